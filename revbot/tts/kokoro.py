from __future__ import annotations

import asyncio
from itertools import count
from typing import TYPE_CHECKING, Any

import httpx

from revbot.session.events import CancellationToken, SynthesisFailure
from revbot.telemetry.logging import get_logger
from revbot.tts.base import SynthesisEngine
from revbot.tts.voice_router import VoiceRouter, load_router

if TYPE_CHECKING:
    from revbot.audio.output import AudioOutputController

_RECOGNISED_KEYS = ("model", "voice", "response_format", "speed", "language")


class KokoroSynthesisEngine(SynthesisEngine):
    """Speech via a Kokoro (OpenAI-compatible ``/v1/audio/speech``) server."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        router: VoiceRouter | None = None,
        audio_output: AudioOutputController | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._router = router or load_router()
        if audio_output is None:
            from revbot.audio.output import AudioOutputController

            audio_output = AudioOutputController()
        self._audio_output = audio_output
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=5.0), transport=transport)
        self._counter = count(1)
        self._logger = get_logger(__name__)

    def build_request(self, text: str, locale: str) -> dict[str, Any]:
        params, resolved = self._router.resolve(locale)
        payload: dict[str, Any] = {"input": text}
        for key in _RECOGNISED_KEYS:
            if key in params:
                payload[key] = params[key]
        if "speed" in payload:
            try:
                payload["speed"] = float(payload["speed"])
            except (TypeError, ValueError):
                self._logger.warning("kokoro.tts.invalid_speed", speed=payload["speed"], locale=resolved)
                payload.pop("speed")
        return payload

    async def synthesize(self, text: str, locale: str) -> bytes:
        payload = self.build_request(text, locale)
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        self._logger.info(
            "kokoro.tts.request",
            locale=locale,
            voice=payload.get("voice"),
            chars=len(text),
        )
        try:
            async with self._client.stream("POST", self._base_url, headers=headers, json=payload) as resp:
                resp.raise_for_status()
                chunks = [chunk async for chunk in resp.aiter_bytes()]
        except httpx.HTTPError as exc:
            raise SynthesisFailure(f"synthesis request failed: {exc}") from exc
        audio = b"".join(chunks)
        if not audio:
            raise SynthesisFailure("synthesis returned empty audio")
        return audio

    async def speak(self, text: str, locale: str, token: CancellationToken) -> None:
        if token.cancelled:
            return
        fetch = asyncio.create_task(self.synthesize(text, locale))
        if not await self._until_cancelled(fetch, token):
            fetch.cancel()
            await asyncio.gather(fetch, return_exceptions=True)
            return
        tag = f"tts:{next(self._counter)}"
        playback = asyncio.create_task(self._audio_output.play_bytes(fetch.result(), tag=tag))
        if not await self._until_cancelled(playback, token):
            if not await self._audio_output.stop(tag):
                playback.cancel()
            await asyncio.gather(playback, return_exceptions=True)

    @staticmethod
    async def _until_cancelled(task: asyncio.Task[Any], token: CancellationToken) -> bool:
        """Wait for *task* unless the token fires first; True when the task finished."""
        waiter = asyncio.create_task(token.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task in done and not token.cancelled:
            task.result()
            return True
        return False

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["KokoroSynthesisEngine"]
