from __future__ import annotations

import asyncio
import queue
from collections.abc import AsyncIterator

import numpy as np
import sounddevice as sd

from revbot.session.events import CaptureUnavailable
from revbot.telemetry.logging import get_logger


class Microphone:
    """Raw 16-bit PCM frames from the default (or configured) input device."""

    def __init__(
        self,
        samplerate: int = 16_000,
        channels: int = 1,
        frame_ms: int = 30,
        device: str | int | None = None,
    ) -> None:
        self.samplerate = samplerate
        self.channels = channels
        self.frame_ms = frame_ms
        self.frame_samples = int(self.samplerate * self.frame_ms / 1000)
        self._queue: queue.Queue[bytes | None] = queue.Queue()
        self._logger = get_logger(__name__)
        self._stream: sd.InputStream | None = None
        self._device = device

    def start(self) -> None:
        if self._stream:
            return

        def callback(indata, frames, time_info, status) -> None:  # type: ignore[override]
            if status:
                self._logger.warning("audio.microphone.status", status=str(status))
            pcm = (indata.copy() * (2**15 - 1)).astype(np.int16).tobytes()
            self._queue.put_nowait(pcm)

        try:
            stream = sd.InputStream(
                samplerate=self.samplerate,
                channels=self.channels,
                blocksize=self.frame_samples,
                dtype="float32",
                callback=callback,
                device=self._device,
            )
            stream.start()
        except sd.PortAudioError as exc:
            raise CaptureUnavailable(f"microphone unavailable: {exc}") from exc
        self._stream = stream
        self._logger.info("audio.microphone.started", samplerate=self.samplerate, device=self._device)

    async def stop(self) -> None:
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            self._logger.info("audio.microphone.stopped")
        self._queue.put_nowait(None)

    async def frames(self) -> AsyncIterator[bytes]:
        loop = asyncio.get_running_loop()
        while True:
            pcm = await loop.run_in_executor(None, self._queue.get)
            if pcm is None:
                break
            yield pcm


__all__ = ["Microphone"]
