"""Task preset models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StartTaskData(BaseModel):
    """Body of a ``start_task`` command.

    The backend needs a task name; summary and definition of done are shown
    to the operator while the task runs. Any other keys are passed through
    untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    task_name: str = Field(..., alias="taskName", description="Name the agent reports for the task.")
    task_summary: str = Field(default="", alias="taskSummary", description="One-line summary of the task.")
    definition_of_done: str = Field(
        default="",
        alias="definitionOfDone",
        description="Condition the operator checks before confirming completion.",
    )

    @field_validator("task_name")
    @classmethod
    def _require_task_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("taskName must not be empty")
        return normalized

    def to_wire(self) -> dict[str, Any]:
        """Keys as the backend expects them; omitted optional keys stay omitted."""

        data = self.model_dump(by_alias=True)
        for name in ("task_summary", "definition_of_done"):
            if name not in self.model_fields_set:
                data.pop(type(self).model_fields[name].alias, None)
        return data


class TaskPreset(BaseModel):
    """A saved start-task payload the operator can launch by id."""

    id: str = Field(..., description="Unique identifier for the preset.")
    title: str = Field(default="", description="Display title; defaults to the task name.")
    description: str = Field(default="", description="What the agent is asked to do.")
    payload: StartTaskData = Field(..., description="Task data sent with the start_task command.")

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ValueError("Task preset id must be a string")
        normalized = str(value).strip()
        if not normalized:
            raise ValueError("Task preset id must not be empty")
        return normalized

    @model_validator(mode="after")
    def _default_title(self) -> "TaskPreset":
        if not self.title:
            self.title = self.payload.task_name
        return self

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "task_name": self.payload.task_name,
        }


__all__ = ["StartTaskData", "TaskPreset"]
