"""Streaming connection lifecycle for the agent endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Mapping

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str | bytes, int], None]
StatusHandler = Callable[[bool], None]
Connector = Callable[[str], Awaitable[Any]]


async def _default_connector(url: str) -> Any:
    return await ws_connect(url)


class ConnectionManager:
    """Own the single duplex connection to the agent backend.

    ``connect`` is a no-op while a connection is open. Whenever the connection
    closes, cleanly or not, exactly one reconnect is scheduled after a fixed
    delay; there is no attempt cap and no backoff growth. ``close`` tears the
    connection down and disarms any pending reconnect.

    Every opened connection gets a new, increasing epoch. Inbound frames are
    delivered to ``on_message`` together with the epoch of the connection
    that received them.
    """

    def __init__(
        self,
        url: str,
        *,
        on_message: MessageHandler,
        on_status: StatusHandler | None = None,
        reconnect_delay: float = 2.0,
        connector: Connector | None = None,
    ) -> None:
        self._url = url
        self._on_message = on_message
        self._on_status = on_status
        self._reconnect_delay = reconnect_delay
        self._connector = connector or _default_connector
        self._ws: Any = None
        self._epoch = 0
        self._connected = False
        self._connecting = False
        self._closed = False
        self._reader: asyncio.Task | None = None
        self._reconnect: asyncio.Task | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect is not None and not self._reconnect.done()

    def _is_open(self) -> bool:
        return self._ws is not None and getattr(self._ws, "state", None) is State.OPEN

    async def connect(self) -> None:
        if self._closed or self._connecting or self._is_open():
            return

        self._connecting = True
        try:
            logger.info("Connecting to agent stream", extra={"url": self._url})
            ws = await self._connector(self._url)
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            logger.warning("Agent stream connection failed", extra={"url": self._url, "error": str(exc)})
            self._set_connected(False)
            self._schedule_reconnect()
            return
        finally:
            self._connecting = False

        if self._closed:
            await ws.close()
            return

        superseded, self._ws = self._ws, ws
        if superseded is not None and superseded is not ws:
            await superseded.close()
        self._epoch += 1
        self._set_connected(True)
        logger.info("Agent stream connected", extra={"url": self._url, "epoch": self._epoch})
        self._reader = asyncio.create_task(self._read_loop(ws, self._epoch))

    async def send(self, payload: Mapping[str, Any]) -> bool:
        """Write one JSON text frame. Returns False when nothing is open to write to."""

        if not self._is_open():
            return False
        try:
            await self._ws.send(json.dumps(dict(payload)))
        except ConnectionClosed:
            return False
        return True

    async def close(self) -> None:
        self._closed = True
        if self._reconnect is not None:
            self._reconnect.cancel()
            self._reconnect = None

        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        self._set_connected(False)

    async def _read_loop(self, ws: Any, epoch: int) -> None:
        try:
            async for raw in ws:
                try:
                    self._on_message(raw, epoch)
                except Exception:
                    logger.exception("Inbound frame handler failed", extra={"epoch": epoch})
        except ConnectionClosed as exc:
            logger.info("Agent stream closed", extra={"epoch": epoch, "reason": str(exc)})
        except Exception:
            logger.exception("Agent stream reader failed", extra={"epoch": epoch})
        finally:
            if ws is self._ws:
                self._ws = None
                self._set_connected(False)
                self._schedule_reconnect()
            if getattr(ws, "state", None) is State.OPEN:
                await ws.close()

    def _schedule_reconnect(self) -> None:
        if self._closed or self.reconnect_pending:
            return
        logger.info("Reconnecting to agent stream", extra={"delay": self._reconnect_delay})
        self._reconnect = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self._reconnect_delay)
        self._reconnect = None
        await self.connect()

    def _set_connected(self, value: bool) -> None:
        if value == self._connected:
            return
        self._connected = value
        if self._on_status is not None:
            self._on_status(value)


_CLOSE = object()


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.state = State.OPEN
        self.sent: list[dict[str, Any]] = []
        self._inbox: asyncio.Queue = asyncio.Queue()

    def feed(self, payload: Mapping[str, Any] | str) -> None:
        """Queue one inbound frame."""

        frame = payload if isinstance(payload, str) else json.dumps(dict(payload))
        self._inbox.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the server closing the connection."""

        self._inbox.put_nowait(_CLOSE)

    async def send(self, data: str) -> None:
        if self.state is not State.OPEN:
            raise ConnectionClosed(None, None)
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        self.state = State.CLOSED
        self._inbox.put_nowait(_CLOSE)

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is _CLOSE:
            self.state = State.CLOSED
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Connector double that hands out :class:`FakeWebSocket` instances."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.urls: list[str] = []
        self.sockets: list[FakeWebSocket] = []

    async def __call__(self, url: str) -> FakeWebSocket:
        self.urls.append(url)
        if self.failures:
            self.failures -= 1
            raise OSError("connection refused")
        ws = FakeWebSocket()
        self.sockets.append(ws)
        return ws

    @property
    def latest(self) -> FakeWebSocket:
        return self.sockets[-1]


__all__ = ["ConnectionManager", "Connector", "FakeConnector", "FakeWebSocket"]
