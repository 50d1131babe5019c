from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any

from revbot.session.events import CancellationToken, Utterance
from revbot.transcription.base import RecognitionEngine
from revbot.tts.base import SynthesisEngine

END_OF_STREAM = object()


async def eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


class ScriptedRecognizer(RecognitionEngine):
    """Recognition engine fed by the test; one queue shared by every stream."""

    def __init__(self, locale: str = "hi-IN") -> None:
        self.locale = locale
        self.items: asyncio.Queue[Any] = asyncio.Queue()
        self.streams_opened = 0
        self.open_streams = 0
        self.max_open_streams = 0
        self.opens = 0
        self.open_error: BaseException | None = None
        self.closed = 0

    async def say(self, text: str) -> None:
        await self.items.put(text)

    async def end_stream(self) -> None:
        await self.items.put(END_OF_STREAM)

    async def fail(self, exc: BaseException) -> None:
        await self.items.put(exc)

    async def open(self) -> None:
        self.opens += 1
        if self.open_error is not None:
            raise self.open_error

    async def stream(self) -> AsyncIterator[Utterance]:
        self.streams_opened += 1
        self.open_streams += 1
        self.max_open_streams = max(self.max_open_streams, self.open_streams)
        try:
            while True:
                item = await self.items.get()
                if item is END_OF_STREAM:
                    return
                if isinstance(item, BaseException):
                    raise item
                yield Utterance(text=item, language=self.locale)
        finally:
            self.open_streams -= 1

    async def close(self) -> None:
        self.closed += 1


class HeldSynthesizer(SynthesisEngine):
    """Speaks until released by the test or cancelled through the token."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.cancelled: list[str] = []
        self.finished: list[str] = []
        self.error: Exception | None = None
        self.release = asyncio.Event()
        self.closed = False

    async def speak(self, text: str, locale: str, token: CancellationToken) -> None:
        self.calls.append((text, locale))
        if self.error is not None:
            raise self.error
        released = asyncio.create_task(self.release.wait())
        cancelled = asyncio.create_task(token.wait())
        try:
            await asyncio.wait({released, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            released.cancel()
            cancelled.cancel()
        if token.cancelled:
            self.cancelled.append(text)
        else:
            self.finished.append(text)

    async def aclose(self) -> None:
        self.closed = True


class RecordingStatus:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def publish_state(self, state: str, payload: dict[str, Any] | None = None) -> None:
        self.events.append((state, payload or {}))

    def states(self) -> list[str]:
        return [state for state, _ in self.events]
