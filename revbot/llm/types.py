from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class ChatResponse:
    text: str
    finish_reason: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class ChatProvider:
    name: str

    async def chat(self, prompt: str) -> ChatResponse:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class UpstreamError(Exception):
    """The provider answered with a non-success status."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"upstream returned {status_code}")
        self.status_code = status_code
        self.detail = detail


__all__ = ["ChatProvider", "ChatResponse", "UpstreamError"]
