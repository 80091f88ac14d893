"""Step timeline reconciliation and display-status derivation."""

from __future__ import annotations

from typing import Sequence

from pydantic import BaseModel, ConfigDict

from .models import Step, StepPatch, StepStatus


class DisplayStep(BaseModel):
    """A timeline entry paired with the status the operator should see."""

    model_config = ConfigDict(frozen=True)

    step: Step
    display_status: StepStatus
    is_last: bool


def reconcile(timeline: Sequence[Step], incoming: StepPatch | Step) -> tuple[Step, ...]:
    """Merge ``incoming`` into ``timeline`` keyed by step id.

    A known id is shallow-merged in place, keeping its position and any field
    the update omits. An unknown id is appended. Entries are never removed or
    reordered.
    """

    patch = incoming if isinstance(incoming, StepPatch) else StepPatch.model_validate(incoming.model_dump())
    changes = patch.changes()

    merged: list[Step] = []
    found = False
    for entry in timeline:
        if not found and entry.id == patch.id:
            merged.append(entry.model_copy(update=changes))
            found = True
        else:
            merged.append(entry)

    if not found:
        merged.append(patch.as_step())
    return tuple(merged)


def display_status(timeline: Sequence[Step], index: int) -> StepStatus:
    # Only one step runs at a time, so an earlier "running" entry is stale.
    status = timeline[index].status
    if status == "running" and index != len(timeline) - 1:
        return "complete"
    return status


def display_timeline(timeline: Sequence[Step]) -> list[DisplayStep]:
    """Pair every step with its derived display status."""

    last = len(timeline) - 1
    return [
        DisplayStep(step=step, display_status=display_status(timeline, index), is_last=index == last)
        for index, step in enumerate(timeline)
    ]


__all__ = ["DisplayStep", "display_status", "display_timeline", "reconcile"]
