from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator

from vosk import KaldiRecognizer, Model, SetLogLevel  # type: ignore[import]

from revbot.audio.microphone import Microphone
from revbot.session.events import CaptureUnavailable, Utterance
from revbot.telemetry.logging import get_logger
from revbot.transcription.base import RecognitionEngine


class VoskRecognitionEngine(RecognitionEngine):
    """Continuous microphone recognition; only final results become utterances."""

    def __init__(
        self,
        model_path: str | None,
        locale: str = "hi-IN",
        sample_rate: int = 16_000,
        frame_ms: int = 30,
        device: str | int | None = None,
    ) -> None:
        if not model_path:
            raise CaptureUnavailable("Vosk model path must be provided.")

        SetLogLevel(-1)
        try:
            self._model = Model(model_path)
        except Exception as exc:
            raise CaptureUnavailable(f"could not load Vosk model: {exc}") from exc
        self._locale = locale
        self._sample_rate = sample_rate
        self._frame_ms = frame_ms
        self._device = device
        self._microphone: Microphone | None = None
        self._logger = get_logger(__name__)

    async def open(self) -> None:
        if self._microphone is None:
            self._microphone = self._start_microphone()

    def _start_microphone(self) -> Microphone:
        microphone = Microphone(samplerate=self._sample_rate, frame_ms=self._frame_ms, device=self._device)
        microphone.start()
        return microphone

    async def stream(self) -> AsyncIterator[Utterance]:
        if self._microphone is None:
            self._microphone = self._start_microphone()
        microphone = self._microphone
        recognizer = KaldiRecognizer(self._model, self._sample_rate)
        try:
            async for pcm in microphone.frames():
                if not recognizer.AcceptWaveform(pcm):
                    continue
                utterance = self._consume_result(recognizer.Result())
                if utterance:
                    yield utterance
            utterance = self._consume_result(recognizer.FinalResult())
            if utterance:
                yield utterance
        finally:
            await microphone.stop()
            if self._microphone is microphone:
                self._microphone = None

    async def close(self) -> None:
        microphone, self._microphone = self._microphone, None
        if microphone is not None:
            await microphone.stop()

    def _consume_result(self, payload: str) -> Utterance | None:
        if not payload:
            return None
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            self._logger.debug("vosk.payload.unparsable", payload=payload[:120])
            return None
        text = (data.get("text") or "").strip()
        if not text:
            return None
        return Utterance(text=text, language=self._locale, ts=time.time())


__all__ = ["VoskRecognitionEngine"]
