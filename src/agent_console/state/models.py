"""State slices mirrored from the remote agent."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SessionStatus = Literal["idle", "running", "waiting", "complete", "error"]
StepStatus = Literal["pending", "running", "complete", "error"]


def _scalar_id(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, bool)):
        raise ValueError("Identifiers must be a string or number")
    return str(value)


class WireModel(BaseModel):
    """Immutable model that accepts both camelCase wire names and Python names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Step(WireModel):
    """One reported unit of agent progress."""

    id: str = Field(..., description="Identifier, unique within a session.")
    name: str = Field(default="", description="Short human-readable title.")
    description: str = Field(default="", description="Longer human-readable detail.")
    status: StepStatus = Field(default="pending", description="Raw status reported by the agent.")
    timestamp: str | None = Field(default=None, description="Optional server timestamp.")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return _scalar_id(value)


class StepPatch(WireModel):
    """Partial step carried by ``step_update``; only ``id`` is mandatory."""

    id: str
    name: str | None = None
    description: str | None = None
    status: StepStatus | None = None
    timestamp: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return _scalar_id(value)

    def changes(self) -> dict[str, Any]:
        """Fields the server actually sent, excluding nulls."""

        return self.model_dump(exclude_unset=True, exclude_none=True)

    def as_step(self) -> Step:
        return Step.model_validate(self.changes())


class Session(WireModel):
    """Identity and lifecycle of one agent run."""

    id: str
    status: SessionStatus = "idle"
    task_name: str = Field(default="", alias="taskName")
    task_summary: str = Field(default="", alias="taskSummary")
    definition_of_done: str = Field(default="", alias="definitionOfDone")
    is_user_controlled: bool = Field(default=False, alias="isUserControlled")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return _scalar_id(value)


class BrowserState(WireModel):
    """Visual and navigational state of the controlled browser.

    ``screenshot`` and ``live_url`` are independent: updating one never clears
    the other.
    """

    url: str = ""
    screenshot: str | None = None
    is_loading: bool = Field(default=False, alias="isLoading")
    live_url: str | None = Field(default=None, alias="liveUrl")


class SessionState(BaseModel):
    """Everything the dispatcher knows, replaced wholesale on every message."""

    model_config = ConfigDict(frozen=True)

    session: Session | None = None
    steps: tuple[Step, ...] = ()
    browser: BrowserState = Field(default_factory=BrowserState)
    epoch: int = 0
    error_message: str | None = None


__all__ = [
    "BrowserState",
    "Session",
    "SessionState",
    "SessionStatus",
    "Step",
    "StepPatch",
    "StepStatus",
    "WireModel",
]
