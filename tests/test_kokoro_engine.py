from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from helpers import eventually
from revbot.session.events import CancellationToken, SynthesisFailure
from revbot.tts.kokoro import KokoroSynthesisEngine
from revbot.tts.voice_router import VoiceRouter

pytestmark = pytest.mark.anyio

ROUTER = VoiceRouter(
    {
        "defaults": {"model": "kokoro", "response_format": "wav", "speed": "1.0"},
        "voices": {"hi-IN": {"voice": "hf_alpha"}, "te-IN": {"voice": "hf_beta", "speed": "fast"}},
    }
)


class FakeAudioOutput:
    def __init__(self, hold: bool = False) -> None:
        self.played: list[tuple[bytes, str]] = []
        self.stopped: list[str | None] = []
        self._hold = hold
        self._done = asyncio.Event()
        self._tag: str | None = None

    async def play_bytes(self, audio: bytes, tag: str) -> float:
        self.played.append((audio, tag))
        self._tag = tag
        if self._hold:
            await self._done.wait()
        self._tag = None
        return 0.5

    async def stop(self, tag: str | None = None) -> bool:
        self.stopped.append(tag)
        if self._tag is None or (tag is not None and tag != self._tag):
            return False
        self._done.set()
        return True


def make_engine(handler, audio_output: FakeAudioOutput, api_key: str | None = "secret") -> KokoroSynthesisEngine:
    return KokoroSynthesisEngine(
        "http://kokoro.test/v1/audio/speech",
        api_key=api_key,
        router=ROUTER,
        audio_output=audio_output,
        transport=httpx.MockTransport(handler),
    )


def test_build_request_keeps_known_keys() -> None:
    engine = make_engine(lambda request: httpx.Response(200), FakeAudioOutput())
    assert engine.build_request("Namaste", "hi-IN") == {
        "input": "Namaste",
        "model": "kokoro",
        "response_format": "wav",
        "speed": 1.0,
        "voice": "hf_alpha",
        "language": "hi",
    }
    assert "speed" not in engine.build_request("hello", "te-IN")


async def test_speak_fetches_and_plays_audio() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"RIFFdata")

    audio = FakeAudioOutput()
    engine = make_engine(handler, audio)
    await engine.speak("Namaste", "hi-IN", CancellationToken())
    await engine.aclose()

    assert audio.played == [(b"RIFFdata", "tts:1")]
    assert seen[0].headers["Authorization"] == "Bearer secret"
    assert json.loads(seen[0].content)["voice"] == "hf_alpha"


async def test_cancel_during_playback_stops_output() -> None:
    audio = FakeAudioOutput(hold=True)
    engine = make_engine(lambda request: httpx.Response(200, content=b"RIFF"), audio)
    token = CancellationToken()

    task = asyncio.create_task(engine.speak("lamba jawab", "hi-IN", token))
    await eventually(lambda: audio.played)
    token.cancel()
    await asyncio.wait_for(task, 1.0)
    await engine.aclose()

    assert audio.stopped == ["tts:1"]


async def test_cancel_before_audio_arrives_skips_playback() -> None:
    audio = FakeAudioOutput()
    engine = make_engine(lambda request: httpx.Response(200, content=b"RIFF"), audio, api_key=None)
    token = CancellationToken()
    token.cancel()

    await engine.speak("kuch nahi", "hi-IN", token)
    await engine.aclose()

    assert audio.played == []


async def test_http_error_is_synthesis_failure() -> None:
    engine = make_engine(lambda request: httpx.Response(503), FakeAudioOutput())
    with pytest.raises(SynthesisFailure):
        await engine.speak("Namaste", "hi-IN", CancellationToken())
    await engine.aclose()


async def test_empty_audio_is_synthesis_failure() -> None:
    engine = make_engine(lambda request: httpx.Response(200, content=b""), FakeAudioOutput())
    with pytest.raises(SynthesisFailure, match="empty audio"):
        await engine.speak("Namaste", "hi-IN", CancellationToken())
    await engine.aclose()
