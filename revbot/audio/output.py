from __future__ import annotations

import asyncio
import io

import numpy as np
import sounddevice as sd
import soundfile as sf

from revbot.telemetry.logging import get_logger


class AudioOutputController:
    """Plays one decoded buffer at a time on the default output device."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._current_tag: str | None = None
        self._current_done: asyncio.Event | None = None
        self._logger = get_logger(__name__)

    async def play_bytes(self, audio: bytes, tag: str) -> float:
        """Decode *audio* and block (cooperatively) until playback finishes or is stopped."""
        if not audio:
            self._logger.warning("audio.output.empty_bytes", tag=tag)
            return 0.0
        with io.BytesIO(audio) as buffer:
            data, samplerate = sf.read(buffer, dtype="float32")
        return await self.play_array(np.asarray(data), int(samplerate), tag)

    async def play_array(self, data: np.ndarray, samplerate: int, tag: str) -> float:
        if samplerate <= 0 or data.size == 0:
            self._logger.warning("audio.output.invalid_payload", tag=tag, samplerate=samplerate)
            return 0.0

        loop = asyncio.get_running_loop()
        done = asyncio.Event()

        def _play() -> None:
            try:
                sd.play(data, samplerate=samplerate, blocking=True)
            finally:
                loop.call_soon_threadsafe(done.set)

        async with self._lock:
            self._current_tag = tag
            self._current_done = done
        self._logger.debug("audio.output.play", tag=tag, seconds=data.shape[0] / float(samplerate))
        try:
            await asyncio.to_thread(_play)
        finally:
            async with self._lock:
                if self._current_done is done:
                    self._current_tag = None
                    self._current_done = None
        return data.shape[0] / float(samplerate)

    async def stop(self, tag: str | None = None) -> bool:
        """Stop playback when *tag* matches the current buffer (any buffer when None)."""
        async with self._lock:
            current_tag = self._current_tag
            done = self._current_done
        if current_tag is None:
            return False
        if tag is not None and current_tag != tag:
            return False
        sd.stop()
        if done is not None:
            await done.wait()
        self._logger.info("audio.output.stopped", tag=current_tag)
        return True


__all__ = ["AudioOutputController"]
