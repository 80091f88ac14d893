"""FastMCP server bootstrap for the agent console."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastmcp import FastMCP

from . import __version__
from .config import AgentConsoleSettings, get_settings
from .session import AgentSession
from .tasks import TaskLoadError, TaskLoader
from .tools import register_tools, snapshot_payload


def configure_logging(level: str) -> None:
    """Configure root logging for the agent console."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_server(
    settings: Optional[AgentConsoleSettings] = None,
    session: AgentSession | None = None,
    task_loader: TaskLoader | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server around one agent session."""

    settings = settings or get_settings()
    session = session or AgentSession(settings)
    task_loader = task_loader or TaskLoader(settings.task_paths)

    server = FastMCP(
        name="Agent Console",
        instructions=(
            "Mirrors a remote browser-automation agent: read the session snapshot, "
            "chat to define a task, take or hand back control of the browser, "
            "and confirm completion."
        ),
    )

    handles = register_tools(server, session=session, tasks=task_loader)

    def status_resource() -> str:
        """Return a JSON string summarizing the live session."""

        try:
            preset_ids = sorted(task_loader.load_all().keys())
            preset_error: str | None = None
        except TaskLoadError as exc:
            preset_ids = []
            preset_error = str(exc)

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "stream_endpoint": settings.stream_endpoint,
            "api_url": settings.api_url,
            "reconnect_pending": session.connection.reconnect_pending,
            "snapshot": snapshot_payload(session.snapshot()),
            "presets": {"count": len(preset_ids), "ids": preset_ids, "error": preset_error},
        }
        return json.dumps(payload)

    server.resource(
        "resource://agent-console/status",
        name="agent_console_status",
        description="Current connection, session and step state of the agent console.",
        mime_type="application/json",
    )(status_resource)

    setattr(server, "agent_session", session)
    setattr(server, "task_loader", task_loader)
    setattr(server, "tool_handles", handles)
    setattr(server, "status_resource", status_resource)
    return server


def main() -> None:
    """Entry point for running the agent console MCP server."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching agent console",
        extra={
            "version": __version__,
            "stream_endpoint": settings.stream_endpoint,
            "api_url": settings.api_url,
        },
    )
    server.run()


if __name__ == "__main__":
    main()
