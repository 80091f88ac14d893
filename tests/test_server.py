from __future__ import annotations

from pathlib import Path
import json
import logging

import pytest

import agent_console.server as server_module
from agent_console.config import AgentConsoleSettings
from agent_console.server import configure_logging, create_server
from agent_console.session import AgentSession
from agent_console.tasks import TaskLoader
from agent_console.transport import FakeConnector, FakeRequestClient


class StubFastMCP:
    def __init__(self, *args, **kwargs):
        self.name = kwargs.get("name")
        self.tools: dict[str, object] = {}
        self.resources: dict[str, object] = {}

    def tool(self, *args, **kwargs):
        def decorator(fn):
            self.tools[kwargs.get("name") or fn.__name__] = fn
            return fn

        return decorator

    def resource(self, uri, **kwargs):
        def decorator(fn):
            self.resources[uri] = fn
            return fn

        return decorator

    def run(self):  # pragma: no cover - not used in tests
        return None


@pytest.fixture
def stub_fastmcp(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server_module, "FastMCP", StubFastMCP)


def _settings(tmp_path: Path) -> AgentConsoleSettings:
    return AgentConsoleSettings(
        api_url="http://agent.test/",
        ws_url="ws://agent.test",
        task_paths=(tmp_path,),
    )


def test_create_server_registers_tools_and_status(stub_fastmcp, tmp_path: Path) -> None:
    (tmp_path / "search.yaml").write_text("payload:\n  taskName: Search\n", encoding="utf-8")
    settings = _settings(tmp_path)
    session = AgentSession(settings, requests=FakeRequestClient(), connector=FakeConnector())

    server = create_server(settings, session=session, task_loader=TaskLoader(settings.task_paths))

    assert server.name == "Agent Console"
    assert "resource://agent-console/status" in server.resources
    assert {"send_chat", "start_task", "confirm_complete", "click_frame"} <= set(server.tools)
    assert server.agent_session is session

    session.handle_frame(json.dumps({"type": "session_created", "sessionId": "s-1"}), 1)
    status = json.loads(server.status_resource())

    assert status["stream_endpoint"] == "ws://agent.test/ws/agent"
    assert status["api_url"] == "http://agent.test"
    assert status["reconnect_pending"] is False
    assert status["snapshot"]["session"]["id"] == "s-1"
    assert status["snapshot"]["is_connected"] is False
    assert status["presets"] == {"count": 1, "ids": ["search"], "error": None}


def test_status_reports_broken_presets(stub_fastmcp, tmp_path: Path) -> None:
    (tmp_path / "broken.yaml").write_text("id: [", encoding="utf-8")
    settings = _settings(tmp_path)
    session = AgentSession(settings, requests=FakeRequestClient(), connector=FakeConnector())

    server = create_server(settings, session=session)
    status = json.loads(server.status_resource())

    assert status["presets"]["count"] == 0
    assert "broken.yaml" in status["presets"]["error"]


def test_configure_logging_uses_level(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))

    configure_logging("DEBUG")

    assert captured["level"] == logging.DEBUG
    assert "%(name)s" in captured["format"]
