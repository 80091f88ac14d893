"""Tool registration for the agent console MCP server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastmcp import FastMCP

from ..session import AgentSession, SessionSnapshot
from ..tasks import TaskLoader

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolHandles:
    session_snapshot: Any
    send_chat: Any
    start_task: Any
    list_presets: Any
    take_control: Any
    hand_back_control: Any
    click_frame: Any
    type_text: Any
    scroll: Any
    confirm_complete: Any


def snapshot_payload(snapshot: SessionSnapshot) -> dict[str, Any]:
    """JSON-ready snapshot with the frame payload replaced by a presence flag."""

    payload = snapshot.model_dump(mode="json", exclude={"browser": {"screenshot"}})
    payload["browser"]["has_screenshot"] = bool(snapshot.browser.screenshot)
    return payload


def register_tools(
    server: FastMCP,
    *,
    session: AgentSession,
    tasks: TaskLoader,
) -> ToolHandles:
    """Register the operator tools on the server."""

    async def _session_snapshot() -> dict[str, Any]:
        """Return the current session, step timeline and browser state."""

        await session.start()
        return snapshot_payload(session.snapshot())

    async def _send_chat(message: str) -> dict[str, Any]:
        """Send a chat message; starts the task when the backend says so."""

        await session.start()
        reply = await session.submit(message)
        if reply is None:
            raise ValueError("Message must not be empty")
        logger.info(
            "Chat reply received",
            extra={
                "session_id": session.session_id,
                "needs_follow_up": reply.needs_follow_up,
                "start_execution": reply.start_execution,
            },
        )
        return {
            "reply": reply.model_dump(mode="json", by_alias=True),
            "transcript": [turn.model_dump() for turn in session.transcript],
        }

    async def _start_task(
        preset_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Start a task from a saved preset, an explicit payload, or both (payload keys win)."""

        if preset_id is None and payload is None:
            raise ValueError("Provide a preset_id or a payload")

        task_data: dict[str, Any] = {}
        if preset_id is not None:
            task_data.update(tasks.get(preset_id).payload.to_wire())
        if payload:
            task_data.update(payload)

        await session.start()
        sent = await session.start_task(task_data)
        logger.info(
            "Start task requested",
            extra={"session_id": session.session_id, "preset_id": preset_id, "sent": sent},
        )
        return {"sent": sent, "session_id": session.session_id, "task_data": task_data}

    def _list_presets() -> list[dict[str, Any]]:
        """List saved task presets."""

        return [preset.summary() for preset in sorted(tasks.load_all().values(), key=lambda item: item.id)]

    async def _take_control() -> dict[str, Any]:
        """Ask the backend to pause the agent and hand input to the operator."""

        await session.start()
        return {"sent": await session.take_control()}

    async def _hand_back_control() -> dict[str, Any]:
        """Return input authority to the agent."""

        await session.start()
        return {"sent": await session.hand_back_control()}

    async def _click_frame(
        display_width: float,
        display_height: float,
        x: float,
        y: float,
    ) -> dict[str, Any]:
        """Click on the displayed frame at (x, y) relative to its top-left corner."""

        await session.start()
        point = await session.click_on_frame(display_width, display_height, x, y)
        return {"dropped": point is None, "point": list(point) if point else None}

    async def _type_text(text: str) -> dict[str, Any]:
        """Type text into the focused element of the controlled browser."""

        await session.start()
        return {"sent": await session.type_text(text)}

    async def _scroll(delta_y: float) -> dict[str, Any]:
        """Scroll the controlled page vertically by delta_y pixels."""

        await session.start()
        return {"sent": await session.scroll(delta_y)}

    async def _confirm_complete() -> dict[str, Any]:
        """Confirm that the finished task met its definition of done."""

        await session.confirm_complete()
        return snapshot_payload(session.snapshot())

    tool_snapshot = server.tool(
        name="session_snapshot",
        description="Fetch the live session, step timeline and browser state.",
    )(_session_snapshot)

    tool_chat = server.tool(
        name="send_chat",
        description="Send a chat message to the agent backend and act on its reply.",
    )(_send_chat)

    tool_start = server.tool(
        name="start_task",
        description="Start agent execution from a preset id and/or an explicit task payload.",
    )(_start_task)

    tool_presets = server.tool(
        name="list_presets",
        description="List saved task presets available to start_task.",
    )(_list_presets)

    tool_take = server.tool(
        name="take_control",
        description="Take input control of the agent's browser.",
    )(_take_control)

    tool_hand_back = server.tool(
        name="hand_back_control",
        description="Hand input control back to the agent.",
    )(_hand_back_control)

    tool_click = server.tool(
        name="click_frame",
        description="Click on the displayed browser frame; only effective while the operator holds control.",
    )(_click_frame)

    tool_type = server.tool(
        name="type_text",
        description="Type text into the controlled browser.",
    )(_type_text)

    tool_scroll = server.tool(
        name="scroll",
        description="Scroll the controlled browser vertically.",
    )(_scroll)

    tool_confirm = server.tool(
        name="confirm_complete",
        description="Confirm the finished task succeeded and close out the session.",
    )(_confirm_complete)

    return ToolHandles(
        session_snapshot=tool_snapshot,
        send_chat=tool_chat,
        start_task=tool_start,
        list_presets=tool_presets,
        take_control=tool_take,
        hand_back_control=tool_hand_back,
        click_frame=tool_click,
        type_text=tool_type,
        scroll=tool_scroll,
        confirm_complete=tool_confirm,
    )


__all__ = ["ToolHandles", "register_tools", "snapshot_payload"]
