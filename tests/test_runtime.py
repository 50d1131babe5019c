from __future__ import annotations

import pytest

from helpers import HeldSynthesizer, ScriptedRecognizer
from revbot.config import AppSettings
from revbot.runtime import VoiceRuntime, build_voice_runtime
from revbot.session.controller import DialogueController
from revbot.session.events import CaptureUnavailable


class Closable:
    def __init__(self) -> None:
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.anyio
async def test_runtime_snapshots_and_shutdown() -> None:
    async def reply(text: str) -> str:
        return text

    synthesizer = HeldSynthesizer()
    controller = DialogueController(ScriptedRecognizer(), synthesizer, reply, restart_delay=0.0)
    client = Closable()
    runtime = VoiceRuntime(controller, [client])

    assert (await runtime.start())["session"] == "active"
    assert (await runtime.toggle())["session"] == "idle"
    assert (await runtime.toggle())["state"] == "LISTENING"

    await runtime.shutdown()
    assert runtime.snapshot() == {"session": "idle", "state": "IDLE", "status": ""}
    assert client.closed
    assert synthesizer.closed


def test_voice_runtime_needs_engines() -> None:
    settings = AppSettings(_env_file=None, VOICE_ENABLED=True, KOKORO_API_URL=None, VOSK_MODEL_PATH=None)
    with pytest.raises((CaptureUnavailable, ValueError)):
        build_voice_runtime(settings, status=None)
