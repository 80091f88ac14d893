"""Outbound commands written to the agent stream."""

from __future__ import annotations

import logging
from typing import Any, Callable, Literal, Mapping, Protocol

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

InterventionAction = Literal["take_control", "hand_back"]


class CommandChannel(Protocol):
    async def send(self, payload: Mapping[str, Any]) -> bool: ...


class BrowserAction(BaseModel):
    """A spatial or keyboard action forwarded to the controlled browser."""

    action: Literal["click", "type", "scroll"]
    x: int | None = None
    y: int | None = None
    text: str | None = None
    delta_y: float | None = Field(default=None, alias="deltaY")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def _check_arguments(self) -> "BrowserAction":
        if self.action == "click" and (self.x is None or self.y is None):
            raise ValueError("click actions require x and y")
        if self.action == "type" and self.text is None:
            raise ValueError("type actions require text")
        if self.action == "scroll" and self.delta_y is None:
            raise ValueError("scroll actions require deltaY")
        return self


def start_task_command(session_id: str | None, task_data: Mapping[str, Any] | None) -> dict[str, Any]:
    # The task payload is opaque; its keys go on the wire verbatim.
    return {"type": "start_task", "sessionId": session_id, **dict(task_data or {})}


def intervention_command(session_id: str | None, action: InterventionAction) -> dict[str, Any]:
    return {"type": "intervention", "action": action, "sessionId": session_id}


def browser_action_command(session_id: str | None, action: BrowserAction) -> dict[str, Any]:
    return {
        "type": "browser_action",
        "action": action.action,
        "sessionId": session_id,
        "x": action.x,
        "y": action.y,
        "text": action.text,
        "deltaY": action.delta_y,
    }


class CommandSender:
    """Serialize operator intents onto the active connection.

    Every command is tagged with the current session id. Nothing is queued:
    when the channel is not open the command is dropped and ``False`` is
    returned. Control authority is not checked here; the backend enforces it.
    """

    def __init__(
        self,
        channel: CommandChannel,
        session_id: Callable[[], str | None],
    ) -> None:
        self._channel = channel
        self._session_id = session_id

    async def start_task(self, task_data: Mapping[str, Any] | None) -> bool:
        return await self._send(start_task_command(self._session_id(), task_data))

    async def take_control(self) -> bool:
        return await self._send(intervention_command(self._session_id(), "take_control"))

    async def hand_back_control(self) -> bool:
        return await self._send(intervention_command(self._session_id(), "hand_back"))

    async def send_browser_action(self, action: BrowserAction) -> bool:
        return await self._send(browser_action_command(self._session_id(), action))

    async def click(self, x: int, y: int) -> bool:
        return await self.send_browser_action(BrowserAction(action="click", x=x, y=y))

    async def type_text(self, text: str) -> bool:
        return await self.send_browser_action(BrowserAction(action="type", text=text))

    async def scroll(self, delta_y: float) -> bool:
        return await self.send_browser_action(BrowserAction(action="scroll", delta_y=delta_y))

    async def _send(self, payload: dict[str, Any]) -> bool:
        sent = await self._channel.send(payload)
        if not sent:
            logger.debug("Dropped command while disconnected", extra={"command": payload["type"]})
        return sent


__all__ = [
    "BrowserAction",
    "CommandChannel",
    "CommandSender",
    "InterventionAction",
    "browser_action_command",
    "intervention_command",
    "start_task_command",
]
