"""Inbound message envelopes received over the agent stream."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator

from ..state.models import Step, StepPatch, WireModel, _scalar_id


class ProtocolError(RuntimeError):
    """Base class for agent protocol errors."""


class MessageDecodeError(ProtocolError):
    """Raised when an inbound frame cannot be decoded into a known message."""


class InboundMessage(WireModel):
    """Common envelope fields. ``type`` selects the concrete model."""

    type: str
    session_id: str | None = Field(default=None, alias="sessionId")

    @field_validator("session_id", mode="before")
    @classmethod
    def _coerce_session_id(cls, value: Any) -> Any:
        # Servers may issue numeric ids; they compare as strings.
        return None if value is None else _scalar_id(value)


class SessionCreated(InboundMessage):
    type: Literal["session_created"] = "session_created"
    session_id: str = Field(..., alias="sessionId")


class ScreenshotFrame(InboundMessage):
    type: Literal["screenshot"] = "screenshot"
    image: str
    url: str | None = None


class StepUpdate(InboundMessage):
    type: Literal["step_update"] = "step_update"
    step: StepPatch
    live_url: str | None = Field(default=None, alias="liveUrl")


class TaskStarted(InboundMessage):
    type: Literal["task_started"] = "task_started"
    task_name: str = Field(default="", alias="taskName")
    task_summary: str = Field(default="", alias="taskSummary")
    definition_of_done: str = Field(default="", alias="definitionOfDone")
    steps: tuple[Step, ...] = ()

    @field_validator("task_name", "task_summary", "definition_of_done", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("steps", mode="before")
    @classmethod
    def _null_to_empty_steps(cls, value: Any) -> Any:
        return () if value is None else value


class TaskComplete(InboundMessage):
    type: Literal["task_complete"] = "task_complete"


class TaskError(InboundMessage):
    type: Literal["task_error"] = "task_error"
    message: str | None = None


class UrlChanged(InboundMessage):
    type: Literal["url_changed"] = "url_changed"
    url: str


class LoadingChanged(InboundMessage):
    type: Literal["loading"] = "loading"
    is_loading: bool = Field(..., alias="isLoading")


class InterventionStatus(InboundMessage):
    type: Literal["intervention_status"] = "intervention_status"
    is_user_controlled: bool = Field(..., alias="isUserControlled")


class LiveUrl(InboundMessage):
    type: Literal["live_url"] = "live_url"
    live_url: str | None = Field(default=None, alias="liveUrl")


MESSAGE_TYPES: dict[str, type[InboundMessage]] = {
    "session_created": SessionCreated,
    "screenshot": ScreenshotFrame,
    "step_update": StepUpdate,
    "task_started": TaskStarted,
    "task_complete": TaskComplete,
    "task_error": TaskError,
    "url_changed": UrlChanged,
    "loading": LoadingChanged,
    "intervention_status": InterventionStatus,
    "live_url": LiveUrl,
}


def decode_message(raw: str | bytes) -> InboundMessage | None:
    """Decode one text frame.

    Returns ``None`` for well-formed envelopes of an unrecognised type so that
    newer servers can add message kinds without breaking older clients.
    """

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MessageDecodeError(f"Frame is not valid JSON: {exc}") from exc
    except RecursionError as exc:
        raise MessageDecodeError("Frame is nested too deeply to decode") from exc

    if not isinstance(data, dict):
        raise MessageDecodeError("Frame must be a JSON object")

    message_type = data.get("type")
    if not isinstance(message_type, str):
        raise MessageDecodeError("Frame is missing a string 'type' field")

    model = MESSAGE_TYPES.get(message_type)
    if model is None:
        return None

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MessageDecodeError(f"Invalid '{message_type}' payload: {exc}") from exc


__all__ = [
    "InboundMessage",
    "InterventionStatus",
    "LiveUrl",
    "LoadingChanged",
    "MESSAGE_TYPES",
    "MessageDecodeError",
    "ProtocolError",
    "ScreenshotFrame",
    "SessionCreated",
    "StepUpdate",
    "TaskComplete",
    "TaskError",
    "TaskStarted",
    "UrlChanged",
    "decode_message",
]
