from __future__ import annotations

import json

import httpx
import pytest

from revbot.llm.relay import RelayClient, provider_reply
from revbot.llm.types import ChatProvider, ChatResponse
from revbot.persona import EMPTY_REPLY
from revbot.session.events import EmptyReply, ReplyFailure

pytestmark = pytest.mark.anyio

URL = "http://relay.test/api/chat"


def client_for(handler) -> RelayClient:
    return RelayClient(URL, transport=httpx.MockTransport(handler))


async def test_reply_posts_text_and_returns_reply() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"reply": "  Namaste!  "})

    client = client_for(handler)
    assert await client.reply("Hello") == "Namaste!"
    await client.aclose()
    assert seen == [{"text": "Hello"}]


async def test_error_status_is_reply_failure() -> None:
    client = client_for(lambda request: httpx.Response(500, json={"error": "Server error"}))
    with pytest.raises(ReplyFailure) as excinfo:
        await client.reply("Hello")
    await client.aclose()
    assert not isinstance(excinfo.value, EmptyReply)
    assert "500" in str(excinfo.value)


async def test_connection_error_is_reply_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = client_for(handler)
    with pytest.raises(ReplyFailure, match="relay unreachable"):
        await client.reply("Hello")
    await client.aclose()


async def test_missing_reply_field_is_empty_reply() -> None:
    client = client_for(lambda request: httpx.Response(200, json={"reply": "   "}))
    with pytest.raises(EmptyReply):
        await client.reply("Hello")
    await client.aclose()


async def test_non_json_body_is_reply_failure() -> None:
    client = client_for(lambda request: httpx.Response(200, text="<html>gateway</html>"))
    with pytest.raises(ReplyFailure, match="malformed"):
        await client.reply("Hello")
    await client.aclose()


class StaticProvider(ChatProvider):
    name = "static"

    def __init__(self, text: str) -> None:
        self.text = text
        self.prompts: list[str] = []

    async def chat(self, prompt: str) -> ChatResponse:
        self.prompts.append(prompt)
        return ChatResponse(text=self.text)


async def test_provider_reply_uses_provider_in_process() -> None:
    provider = StaticProvider("Booking 499 rupaye me hoti hai.")
    reply = provider_reply(provider)
    assert await reply("booking?") == "Booking 499 rupaye me hoti hai."
    assert provider.prompts == ["booking?"]


async def test_provider_reply_substitutes_empty_text() -> None:
    reply = provider_reply(StaticProvider(""))
    assert await reply("anything") == EMPTY_REPLY
