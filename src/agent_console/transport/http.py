"""Request/response calls against the agent backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class RequestError(RuntimeError):
    """Raised when a request endpoint fails or answers with a non-2xx status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ChatReply(BaseModel):
    """Outcome of one chat round trip."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    needs_follow_up: bool = Field(default=False, alias="needsFollowUp")
    question: str | None = None
    start_execution: bool = Field(default=False, alias="startExecution")
    task_data: dict[str, Any] | None = Field(default=None, alias="taskData")


class RequestClient:
    """POST JSON bodies to the chat and confirm endpoints."""

    def __init__(self, base_url: str, *, timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def chat(self, session_id: str | None, message: str) -> ChatReply:
        body = await self._post("/api/chat", {"sessionId": session_id, "message": message})
        try:
            return ChatReply.model_validate(body or {})
        except ValidationError as exc:
            raise RequestError(f"Unexpected chat response: {exc}") from exc

    async def confirm(self, session_id: str | None, *, success: bool = True) -> None:
        await self._post("/api/confirm", {"sessionId": session_id, "success": success})

    async def _post(self, path: str, payload: Mapping[str, Any]) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(url, json=dict(payload)) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        text = await resp.text()
                        logger.warning(
                            "Agent request rejected",
                            extra={"url": url, "status": resp.status},
                        )
                        raise RequestError(
                            f"POST {path} failed with status {resp.status}: {text[:200]}",
                            status=resp.status,
                        )
                    if resp.content_type != "application/json":
                        return None
                    return await resp.json()
        except aiohttp.ClientError as exc:
            logger.warning("Agent request failed", extra={"url": url, "error": str(exc)})
            raise RequestError(f"POST {path} failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise RequestError(f"POST {path} timed out") from exc


class FakeRequestClient(RequestClient):
    """Test double that records calls and replays canned chat replies."""

    def __init__(self, replies: Iterable[ChatReply | Exception] | None = None) -> None:  # type: ignore[override]
        self._base_url = "http://fake-agent"
        self._replies = list(replies or [])
        self._calls: list[tuple[str, dict[str, Any]]] = []
        self.confirm_error: Exception | None = None

    async def chat(self, session_id: str | None, message: str) -> ChatReply:  # type: ignore[override]
        self._calls.append(("chat", {"sessionId": session_id, "message": message}))
        if self._replies:
            reply = self._replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply
        return ChatReply()

    async def confirm(self, session_id: str | None, *, success: bool = True) -> None:  # type: ignore[override]
        self._calls.append(("confirm", {"sessionId": session_id, "success": success}))
        if self.confirm_error is not None:
            raise self.confirm_error

    @property
    def calls(self) -> list[tuple[str, dict[str, Any]]]:
        return self._calls


__all__ = ["ChatReply", "FakeRequestClient", "RequestClient", "RequestError"]
