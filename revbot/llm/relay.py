from __future__ import annotations

from collections.abc import Awaitable, Callable

import httpx

from revbot.llm.types import ChatProvider
from revbot.persona import EMPTY_REPLY
from revbot.session.events import EmptyReply, ReplyFailure
from revbot.telemetry.logging import get_logger


class RelayClient:
    """Remote reply function backed by the relay's ``/api/chat`` endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=5.0), transport=transport)
        self._logger = get_logger(__name__)

    async def reply(self, text: str) -> str:
        try:
            resp = await self._client.post(self._url, json={"text": text})
        except httpx.HTTPError as exc:
            self._logger.warning("relay.client.unreachable", url=self._url, error=str(exc))
            raise ReplyFailure(f"relay unreachable: {exc}") from exc

        if resp.is_error:
            self._logger.warning("relay.client.error", status=resp.status_code, body=resp.text[:200])
            raise ReplyFailure(f"relay returned {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise ReplyFailure("malformed relay response") from exc

        reply = data.get("reply") if isinstance(data, dict) else None
        if not isinstance(reply, str) or not reply.strip():
            raise EmptyReply("empty reply")
        return reply.strip()

    async def aclose(self) -> None:
        await self._client.aclose()


def provider_reply(provider: ChatProvider) -> Callable[[str], Awaitable[str]]:
    """Reply function that calls the chat provider in-process, skipping HTTP."""

    async def _reply(text: str) -> str:
        resp = await provider.chat(text)
        return resp.text or EMPTY_REPLY

    return _reply


__all__ = ["RelayClient", "provider_reply"]
