from __future__ import annotations

import asyncio
import base64
import io
import json

import pytest
from PIL import Image
from websockets.protocol import State

from agent_console.config import AgentConsoleSettings
from agent_console.session import AgentSession, SessionSnapshot
from agent_console.transport import ChatReply, FakeConnector, FakeRequestClient, RequestError


async def _drain(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def _session(
    connector: FakeConnector,
    requests: FakeRequestClient | None = None,
) -> AgentSession:
    settings = AgentConsoleSettings(reconnect_delay=0.02, ws_url="ws://agent.test", api_url="http://agent.test")
    return AgentSession(settings, requests=requests or FakeRequestClient(), connector=connector)


def _png(width: int, height: int) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def test_stream_messages_build_snapshot() -> None:
    async def scenario() -> SessionSnapshot:
        connector = FakeConnector()
        session = _session(connector)
        async with session:
            ws = connector.latest
            ws.feed({"type": "session_created", "sessionId": "s-1"})
            ws.feed(
                {
                    "type": "task_started",
                    "taskName": "Fill form",
                    "taskSummary": "Contact form",
                    "definitionOfDone": "Thank-you page",
                    "steps": [],
                }
            )
            ws.feed({"type": "step_update", "step": {"id": "a", "name": "Open", "status": "complete"}})
            ws.feed({"type": "step_update", "step": {"id": "b", "name": "Type", "status": "running"}})
            ws.feed({"type": "step_update", "step": {"id": "c", "name": "Submit", "status": "running"}})
            ws.feed({"type": "screenshot", "image": "frame", "url": "https://form.test"})
            await _drain(10)
            return session.snapshot()

    snapshot = asyncio.run(scenario())

    assert snapshot.browser.url == "https://form.test"
    assert snapshot.session.id == "s-1"
    assert snapshot.is_running
    assert [item.display_status for item in snapshot.steps] == ["complete", "complete", "running"]
    assert snapshot.view_mode == "screenshot"
    assert snapshot.last_message_type == "screenshot"


def test_connector_uses_stream_endpoint() -> None:
    async def scenario() -> list[str]:
        connector = FakeConnector()
        async with _session(connector):
            pass
        return connector.urls

    assert asyncio.run(scenario()) == ["ws://agent.test/ws/agent"]


def test_live_view_takes_precedence_but_keeps_screenshot() -> None:
    async def scenario() -> SessionSnapshot:
        connector = FakeConnector()
        async with _session(connector) as session:
            connector.latest.feed({"type": "screenshot", "image": "frame"})
            connector.latest.feed({"type": "live_url", "liveUrl": "https://live.test/v"})
            await _drain()
            return session.snapshot()

    snapshot = asyncio.run(scenario())

    assert snapshot.view_mode == "live"
    assert snapshot.browser.screenshot == "frame"


def test_bad_frames_are_dropped_and_processing_continues() -> None:
    async def scenario() -> AgentSession:
        connector = FakeConnector()
        session = _session(connector)
        async with session:
            connector.latest.feed("{not json")
            connector.latest.feed({"type": "mystery", "payload": 1})
            connector.latest.feed({"type": "session_created", "sessionId": "s-1"})
            await _drain()
            assert session.is_connected
        return session

    session = asyncio.run(scenario())

    assert session.session_id == "s-1"
    assert session.last_message.type == "session_created"


def test_deeply_nested_frame_keeps_the_stream_alive() -> None:
    async def scenario() -> tuple[AgentSession, FakeConnector]:
        connector = FakeConnector()
        session = _session(connector)
        async with session:
            first = connector.latest
            first.feed("[" * 100000 + "]" * 100000)
            first.feed({"type": "session_created", "sessionId": 123})
            await _drain()
            assert session.is_connected
            assert first.state is State.OPEN
        return session, connector

    session, connector = asyncio.run(scenario())

    assert session.session_id == "123"
    assert len(connector.sockets) == 1


def test_reconnect_with_new_session_discards_late_messages() -> None:
    async def scenario() -> AgentSession:
        connector = FakeConnector()
        session = _session(connector)
        connectivity: list[bool] = []
        session.subscribe(lambda snapshot: connectivity.append(snapshot.is_connected))
        async with session:
            connector.latest.feed({"type": "session_created", "sessionId": "s-1"})
            connector.latest.feed({"type": "task_started", "taskName": "Old", "steps": []})
            connector.latest.feed({"type": "task_complete"})
            await _drain()
            await session.confirm_complete()
            assert session.state.session.status == "complete"

            connector.latest.drop()
            await _drain()
            assert not session.is_connected

            await asyncio.sleep(0.06)
            assert len(connector.sockets) == 2
            connector.latest.feed({"type": "session_created", "sessionId": "s-2"})
            await _drain()

            session.handle_frame(json.dumps({"type": "intervention_status", "isUserControlled": True}), 1)
            session.handle_frame(json.dumps({"type": "task_complete", "sessionId": "s-1"}), 2)
        assert False in connectivity
        return session

    session = asyncio.run(scenario())

    assert session.state.session.id == "s-2"
    assert session.state.session.status == "idle"
    assert session.state.session.is_user_controlled is False


def test_commands_carry_session_id_and_drop_when_disconnected() -> None:
    async def scenario() -> tuple[list[dict], bool]:
        connector = FakeConnector()
        session = _session(connector)
        async with session:
            ws = connector.latest
            ws.feed({"type": "session_created", "sessionId": "s-9"})
            await _drain()
            await session.start_task({"taskName": "Search", "query": "flights"})
            await session.take_control()
            await session.type_text("SFO")
            await session.scroll(240)
            await session.hand_back_control()
            ws.drop()
            await _drain()
            dropped = await session.take_control()
        return ws.sent, dropped

    sent, dropped = asyncio.run(scenario())

    assert sent[0] == {"type": "start_task", "sessionId": "s-9", "taskName": "Search", "query": "flights"}
    assert [item["type"] for item in sent] == [
        "start_task",
        "intervention",
        "browser_action",
        "browser_action",
        "intervention",
    ]
    assert all(item["sessionId"] == "s-9" for item in sent)
    assert sent[3]["deltaY"] == 240
    assert dropped is False


def test_click_on_frame_requires_operator_control() -> None:
    async def scenario() -> tuple[object, object, object, object, list[dict]]:
        connector = FakeConnector()
        async with _session(connector) as session:
            ws = connector.latest
            ws.feed({"type": "session_created", "sessionId": "s-1"})
            await _drain()
            ignored = await session.click_on_frame(800, 800, 400, 400)

            ws.feed({"type": "intervention_status", "isUserControlled": True})
            await _drain()
            default_size = await session.click_on_frame(800, 800, 400, 150)
            padding = await session.click_on_frame(800, 800, 10, 10)

            ws.feed({"type": "screenshot", "image": _png(640, 400)})
            await _drain()
            from_frame = await session.click_on_frame(800, 800, 400, 400)
            return ignored, default_size, padding, from_frame, ws.sent

    ignored, default_size, padding, from_frame, sent = asyncio.run(scenario())

    assert ignored is None
    assert default_size == (640, 0)
    assert padding is None
    assert from_frame == (320, 200)
    assert [(item["x"], item["y"]) for item in sent] == [(640, 0), (320, 200)]


def test_submit_follow_up_and_start_execution() -> None:
    requests = FakeRequestClient(
        [
            ChatReply(needs_follow_up=True, question="Which day?"),
            ChatReply(start_execution=True, task_data={"taskName": "Book", "date": "Friday"}),
        ]
    )

    async def scenario() -> tuple[SessionSnapshot, list[dict]]:
        connector = FakeConnector()
        async with _session(connector, requests) as session:
            connector.latest.feed({"type": "session_created", "sessionId": "s-1"})
            await _drain()
            assert await session.submit("   ") is None
            await session.submit("Book a table")
            await session.submit("Friday")
            return session.snapshot(), connector.latest.sent

    snapshot, sent = asyncio.run(scenario())

    assert [(turn.role, turn.content) for turn in snapshot.transcript] == [
        ("user", "Book a table"),
        ("assistant", "Which day?"),
        ("user", "Friday"),
    ]
    assert sent == [{"type": "start_task", "sessionId": "s-1", "taskName": "Book", "date": "Friday"}]
    assert requests.calls[0] == ("chat", {"sessionId": "s-1", "message": "Book a table"})


def test_request_failures_propagate() -> None:
    requests = FakeRequestClient([RequestError("boom", status=502)])
    requests.confirm_error = RequestError("nope", status=500)

    async def scenario() -> AgentSession:
        connector = FakeConnector()
        async with _session(connector, requests) as session:
            connector.latest.feed({"type": "session_created", "sessionId": "s-1"})
            connector.latest.feed({"type": "task_complete"})
            await _drain()
            with pytest.raises(RequestError):
                await session.send_message("hi")
            with pytest.raises(RequestError):
                await session.confirm_complete()
        return session

    session = asyncio.run(scenario())

    assert session.state.session.status == "waiting"


def test_confirm_after_close_is_ignored() -> None:
    async def scenario() -> AgentSession:
        connector = FakeConnector()
        session = _session(connector)
        await session.start()
        connector.latest.feed({"type": "session_created", "sessionId": "s-1"})
        connector.latest.feed({"type": "task_complete"})
        await _drain()
        await session.close()
        await session.confirm_complete()
        return session

    session = asyncio.run(scenario())

    assert session.state.session.status == "waiting"
    assert not session.is_connected


def test_unsubscribe_stops_notifications() -> None:
    seen: list[SessionSnapshot] = []
    session = _session(FakeConnector())
    unsubscribe = session.subscribe(seen.append)

    session.handle_frame(json.dumps({"type": "session_created", "sessionId": "s-1"}), 1)
    unsubscribe()
    session.handle_frame(json.dumps({"type": "loading", "isLoading": True}), 1)

    assert len(seen) == 1
    assert seen[0].session.id == "s-1"
