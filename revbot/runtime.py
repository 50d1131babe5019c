from __future__ import annotations

from typing import Any, Protocol

from revbot.config import AppSettings
from revbot.llm.relay import RelayClient, provider_reply
from revbot.llm.types import ChatProvider
from revbot.session.controller import DialogueController
from revbot.session.events import CaptureUnavailable, StatusSink
from revbot.telemetry.logging import get_logger
from revbot.tts.kokoro import KokoroSynthesisEngine
from revbot.tts.voice_router import load_router_from

logger = get_logger(__name__)


class _Closable(Protocol):
    async def aclose(self) -> None: ...


class VoiceRuntime:
    """Owns the dialogue controller plus the clients it was built with."""

    def __init__(self, controller: DialogueController, closables: list[_Closable] | None = None) -> None:
        self._controller = controller
        self._closables = list(closables or [])

    @property
    def controller(self) -> DialogueController:
        return self._controller

    def snapshot(self) -> dict[str, Any]:
        return self._controller.snapshot()

    async def toggle(self) -> dict[str, Any]:
        await self._controller.toggle()
        return self.snapshot()

    async def start(self) -> dict[str, Any]:
        await self._controller.start()
        return self.snapshot()

    async def stop(self) -> dict[str, Any]:
        await self._controller.stop()
        return self.snapshot()

    async def shutdown(self) -> None:
        logger.info("runtime.shutdown.start")
        await self._controller.aclose()
        for closable in self._closables:
            await closable.aclose()
        logger.info("runtime.shutdown.complete")


def build_voice_runtime(
    settings: AppSettings,
    status: StatusSink | None,
    provider: ChatProvider | None = None,
) -> VoiceRuntime:
    """Wire microphone recognition, Kokoro speech and the reply function.

    With ``RELAY_URL`` set the controller talks to a remote relay over HTTP;
    otherwise it calls *provider* directly.
    """
    from revbot.transcription import VoskRecognitionEngine

    if VoskRecognitionEngine is None:
        raise CaptureUnavailable("vosk / sounddevice are not installed")
    if not settings.tts.base_url:
        raise ValueError("KOKORO_API_URL must be set to enable voice")

    recognizer = VoskRecognitionEngine(
        model_path=settings.capture.vosk_model_path,
        locale=settings.capture.locale,
        sample_rate=settings.capture.sample_rate,
        frame_ms=settings.capture.frame_ms,
        device=settings.capture.input_device,
    )
    synthesizer = KokoroSynthesisEngine(
        settings.tts.base_url,
        settings.tts.api_key,
        router=load_router_from(settings.tts.voices_config),
    )

    closables: list[_Closable] = []
    if settings.RELAY_URL or provider is None:
        client = RelayClient(settings.session.relay_url, timeout=settings.session.reply_timeout_seconds)
        closables.append(client)
        reply = client.reply
        logger.info("runtime.reply.remote", url=settings.session.relay_url)
    else:
        reply = provider_reply(provider)
        logger.info("runtime.reply.in_process", provider=provider.name)

    controller = DialogueController(
        recognizer,
        synthesizer,
        reply,
        status=status,
        reply_timeout=settings.session.reply_timeout_seconds,
        speak_fallback=settings.session.speak_fallback,
    )
    return VoiceRuntime(controller, closables)


__all__ = ["VoiceRuntime", "build_voice_runtime"]
