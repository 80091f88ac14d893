"""Session facade composing the connection, dispatcher and command sender."""

from __future__ import annotations

import logging
from typing import Any, Callable, Literal, Mapping

from pydantic import BaseModel, ConfigDict

from .config import AgentConsoleSettings, get_settings
from .dispatcher import apply_message, is_stale, mark_complete
from .geometry import frame_size, map_to_native
from .protocol.commands import BrowserAction, CommandSender
from .protocol.messages import InboundMessage, MessageDecodeError, decode_message
from .state.models import BrowserState, Session, SessionState
from .state.timeline import DisplayStep, display_timeline
from .transport.connection import ConnectionManager, Connector
from .transport.http import ChatReply, RequestClient

logger = logging.getLogger(__name__)

ViewMode = Literal["live", "screenshot", "empty"]


class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class SessionSnapshot(BaseModel):
    """Everything the presentation layer needs for one render."""

    model_config = ConfigDict(frozen=True)

    session: Session | None
    steps: list[DisplayStep]
    browser: BrowserState
    is_connected: bool
    is_running: bool
    view_mode: ViewMode
    error_message: str | None = None
    last_message_type: str | None = None
    transcript: list[ChatTurn] = []


Listener = Callable[[SessionSnapshot], None]


def view_mode(browser: BrowserState) -> ViewMode:
    if browser.live_url:
        return "live"
    if browser.screenshot:
        return "screenshot"
    return "empty"


class AgentSession:
    """Single entry point for the operator console.

    Inbound frames are decoded and reduced into :class:`SessionState` one at a
    time on the event loop. Operator intents go out through the command
    sender, or through the request client for chat and confirmation.
    """

    def __init__(
        self,
        settings: AgentConsoleSettings | None = None,
        *,
        requests: RequestClient | None = None,
        connector: Connector | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._state = SessionState()
        self._connection = ConnectionManager(
            self._settings.stream_endpoint,
            on_message=self.handle_frame,
            on_status=self._handle_status,
            reconnect_delay=self._settings.reconnect_delay,
            connector=connector,
        )
        self._requests = requests or RequestClient(
            self._settings.api_url, timeout=self._settings.request_timeout
        )
        self._commands = CommandSender(self._connection, lambda: self.session_id)
        self._listeners: list[Listener] = []
        self._last_message: InboundMessage | None = None
        self._transcript: list[ChatTurn] = []
        self._closed = False

    @property
    def settings(self) -> AgentConsoleSettings:
        return self._settings

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._state.session.id if self._state.session is not None else None

    @property
    def is_connected(self) -> bool:
        return self._connection.connected

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def last_message(self) -> InboundMessage | None:
        return self._last_message

    @property
    def transcript(self) -> list[ChatTurn]:
        return list(self._transcript)

    async def start(self) -> None:
        await self._connection.connect()

    async def close(self) -> None:
        self._closed = True
        await self._connection.close()

    async def __aenter__(self) -> "AgentSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener; returns a function that removes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def snapshot(self) -> SessionSnapshot:
        state = self._state
        return SessionSnapshot(
            session=state.session,
            steps=display_timeline(state.steps),
            browser=state.browser,
            is_connected=self.is_connected,
            is_running=state.session is not None and state.session.status == "running",
            view_mode=view_mode(state.browser),
            error_message=state.error_message,
            last_message_type=self._last_message.type if self._last_message else None,
            transcript=list(self._transcript),
        )

    def handle_frame(self, raw: str | bytes, epoch: int) -> None:
        """Decode and apply one inbound frame from connection ``epoch``."""

        try:
            message = decode_message(raw)
        except MessageDecodeError as exc:
            logger.warning("Dropping undecodable frame", extra={"epoch": epoch, "error": str(exc)})
            return

        if message is None:
            logger.debug("Ignoring unrecognised message type", extra={"epoch": epoch})
            return

        if is_stale(self._state, message, epoch):
            logger.debug(
                "Dropping stale message",
                extra={"epoch": epoch, "type": message.type, "current_epoch": self._state.epoch},
            )
            return

        self._last_message = message
        self._state = apply_message(self._state, message, epoch)
        self._notify()

    async def start_task(self, task_data: Mapping[str, Any] | None) -> bool:
        return await self._commands.start_task(task_data)

    async def take_control(self) -> bool:
        return await self._commands.take_control()

    async def hand_back_control(self) -> bool:
        return await self._commands.hand_back_control()

    async def send_browser_action(self, action: BrowserAction) -> bool:
        return await self._commands.send_browser_action(action)

    async def type_text(self, text: str) -> bool:
        return await self._commands.type_text(text)

    async def scroll(self, delta_y: float) -> bool:
        return await self._commands.scroll(delta_y)

    async def click_on_frame(
        self,
        display_width: float,
        display_height: float,
        pointer_x: float,
        pointer_y: float,
    ) -> tuple[int, int] | None:
        """Forward a click on the displayed frame while the operator holds control.

        Returns the native point that was sent, or ``None`` when the click was
        dropped (agent in control, or pointer in the letterbox padding).
        """

        session = self._state.session
        if session is None or not session.is_user_controlled:
            return None

        size = frame_size(self._state.browser.screenshot)
        native_width, native_height = size or (
            self._settings.default_frame_width,
            self._settings.default_frame_height,
        )
        point = map_to_native(
            display_width, display_height, pointer_x, pointer_y, native_width, native_height
        )
        if point is None:
            return None

        await self._commands.click(*point)
        return point

    async def send_message(self, text: str) -> ChatReply:
        """One chat round trip; failures propagate as ``RequestError``."""

        return await self._requests.chat(self.session_id, text)

    async def confirm_complete(self) -> None:
        await self._requests.confirm(self.session_id, success=True)
        if self._closed:
            return
        self._state = mark_complete(self._state)
        self._notify()

    async def submit(self, query: str) -> ChatReply | None:
        """Send an operator query and act on the reply.

        A follow-up question is appended to the transcript; a reply that asks
        to begin execution starts the attached task.
        """

        if not query.strip():
            return None

        self._transcript.append(ChatTurn(role="user", content=query))
        reply = await self.send_message(query)
        if self._closed:
            return reply

        if reply.needs_follow_up:
            self._transcript.append(ChatTurn(role="assistant", content=reply.question or ""))
            self._notify()
        elif reply.start_execution:
            await self.start_task(reply.task_data)
        return reply

    def _handle_status(self, connected: bool) -> None:
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # pragma: no cover - listener bug, keep dispatching
                logger.exception("Snapshot listener failed")


__all__ = ["AgentSession", "ChatTurn", "SessionSnapshot", "view_mode"]
