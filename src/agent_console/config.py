"""Configuration management for the agent console."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AgentConsoleSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    api_url: str = Field(default="http://localhost:8001", validation_alias="AGENT_API_URL")
    ws_url: str = Field(default="ws://localhost:8001", validation_alias="AGENT_WS_URL")
    ws_path: str = Field(default="/ws/agent", validation_alias="AGENT_WS_PATH")
    reconnect_delay: float = Field(default=2.0, validation_alias="AGENT_RECONNECT_DELAY")
    request_timeout: float = Field(default=30.0, validation_alias="AGENT_REQUEST_TIMEOUT")
    log_level: str = Field(default="INFO", validation_alias="AGENT_LOG_LEVEL")
    task_paths: Annotated[tuple[Path, ...], NoDecode] = Field(
        default=(Path("tasks"),), validation_alias="AGENT_TASK_PATHS"
    )
    default_frame_width: int = Field(default=1280, validation_alias="AGENT_FRAME_WIDTH")
    default_frame_height: int = Field(default=800, validation_alias="AGENT_FRAME_HEIGHT")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "AGENT_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("api_url", "ws_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("ws_path")
    @classmethod
    def _normalize_ws_path(cls, value: str) -> str:
        value = value.strip()
        return value if value.startswith("/") else f"/{value}"

    @field_validator("reconnect_delay", "request_timeout")
    @classmethod
    def _validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Delays and timeouts must be > 0 seconds")
        return value

    @field_validator("default_frame_width", "default_frame_height")
    @classmethod
    def _validate_frame_dimension(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Default frame dimensions must be >= 1")
        return value

    @field_validator("task_paths", mode="before")
    @classmethod
    def _parse_task_paths(cls, value):
        if value is None or value == "":
            return (Path("tasks"),)
        if isinstance(value, (list, tuple)):
            return tuple(Path(str(item)) for item in value)
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(os.pathsep) if part.strip()]
            return tuple(Path(part) for part in parts) or (Path("tasks"),)
        raise TypeError("AGENT_TASK_PATHS must be a list of paths or a path-separated string")

    @property
    def stream_endpoint(self) -> str:
        """Full address of the streaming agent endpoint."""

        return f"{self.ws_url}{self.ws_path}"


@lru_cache(maxsize=1)
def get_settings() -> AgentConsoleSettings:
    """Return cached settings instance."""

    settings = AgentConsoleSettings()
    settings.task_paths = tuple(path.expanduser().resolve() for path in settings.task_paths)
    return settings


__all__ = ["AgentConsoleSettings", "get_settings"]
