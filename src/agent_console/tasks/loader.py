"""Read task presets from YAML files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Iterator

import yaml
from pydantic import ValidationError

from .models import TaskPreset

PRESET_SUFFIXES = (".yaml", ".yml")


class TaskLoadError(RuntimeError):
    """Raised when one or more preset files cannot be parsed."""


class TaskLoader:
    """Loads task presets from YAML files or directories of them.

    A file may hold one preset, a list of presets, or several YAML documents.
    A file holding exactly one preset may leave out ``id``; the file stem is
    used. Within one search path ids must be unique. Across search paths the
    later path wins.
    """

    def __init__(self, search_paths: Iterable[Path] | None = None) -> None:
        self._search_paths: list[Path] = [Path(path) for path in (search_paths or [])]

    @property
    def search_paths(self) -> list[Path]:
        return [path for path in self._search_paths if path.exists()]

    def load_all(self) -> dict[str, TaskPreset]:
        presets: dict[str, TaskPreset] = {}
        errors: list[str] = []

        for base in self.search_paths:
            defined_in: dict[str, Path] = {}
            for path in _preset_files(base):
                for preset in _read_presets(path, errors):
                    if preset.id in defined_in:
                        errors.append(
                            f"{path}: duplicate task preset id '{preset.id}' "
                            f"(already defined in {defined_in[preset.id]})"
                        )
                        continue
                    defined_in[preset.id] = path
                    presets[preset.id] = preset

        if errors:
            raise TaskLoadError("; ".join(errors))
        return presets

    def get(self, preset_id: str) -> TaskPreset:
        presets = self.load_all()
        if preset_id not in presets:
            raise TaskLoadError(f"Task preset '{preset_id}' not found in search paths")
        return presets[preset_id]


def _preset_files(base: Path) -> Iterator[Path]:
    if base.is_file():
        if base.suffix in PRESET_SUFFIXES:
            yield base
        return
    yield from sorted(path for path in base.iterdir() if path.is_file() and path.suffix in PRESET_SUFFIXES)


def _read_presets(path: Path, errors: list[str]) -> list[TaskPreset]:
    try:
        documents = [doc for doc in yaml.safe_load_all(path.read_text(encoding="utf-8")) if doc is not None]
    except (OSError, yaml.YAMLError) as exc:
        errors.append(f"{path}: unreadable preset file: {exc}")
        return []

    entries: list[Any] = []
    for document in documents:
        entries.extend(document if isinstance(document, list) else [document])

    single = len(entries) == 1
    presets: list[TaskPreset] = []
    for index, entry in enumerate(entries):
        where = str(path) if single else f"{path}[{index}]"
        if not isinstance(entry, dict):
            errors.append(f"{where}: a task preset must be a mapping")
            continue
        if single:
            entry = {"id": path.stem, **entry}
        try:
            presets.append(TaskPreset.model_validate(entry))
        except ValidationError as exc:
            errors.append(f"{where}: {exc}")
    return presets


def load_tasks(search_paths: Iterable[Path] | None = None) -> dict[str, TaskPreset]:
    """Load presets from the given paths."""

    return TaskLoader(search_paths).load_all()


__all__ = ["PRESET_SUFFIXES", "TaskLoadError", "TaskLoader", "TaskPreset", "load_tasks"]
