from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import aclosing

from revbot.session.events import CaptureTransientEnd, CaptureUnavailable, Utterance
from revbot.telemetry.logging import get_logger
from revbot.transcription.base import RecognitionEngine

UtteranceHandler = Callable[[Utterance], Awaitable[None]]
CaptureErrorHandler = Callable[[CaptureUnavailable], Awaitable[None]]


class CaptureSource:
    """Keeps one recognition stream open while capture is wanted.

    A single pump task owns the stream, so reopening after an engine-side
    end can never leave two streams running. Utterances are handed to
    ``on_utterance`` one at a time, in arrival order; the next result is not
    read until the handler returns.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        on_utterance: UtteranceHandler,
        on_error: CaptureErrorHandler | None = None,
        restart_delay: float = 0.1,
    ) -> None:
        self._engine = engine
        self._on_utterance = on_utterance
        self._on_error = on_error
        self._restart_delay = max(restart_delay, 0.0)
        self._desired = False
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._streams_opened = 0
        self._restarts = 0
        self._logger = get_logger(__name__)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def restarts(self) -> int:
        return self._restarts

    @property
    def streams_opened(self) -> int:
        return self._streams_opened

    async def start(self) -> bool:
        """Open the engine and begin capture; False when nothing new was started.

        ``CaptureUnavailable`` from the engine propagates to the caller and
        leaves capture stopped.
        """
        self._desired = True
        async with self._lock:
            if self.running:
                return False
            try:
                await self._open()
            except CaptureUnavailable:
                self._desired = False
                raise
            if not self._desired:
                # stop() ran while the device was opening
                await self._engine.close()
                return False
            self._task = asyncio.create_task(self._pump(), name="capture-pump")
        self._logger.info("capture.start")
        return True

    async def stop(self) -> None:
        self._desired = False
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        await self._engine.close()
        self._logger.info("capture.stop")

    async def _open(self) -> None:
        try:
            await self._engine.open()
        except CaptureUnavailable:
            raise
        except Exception as exc:
            raise CaptureUnavailable(str(exc) or exc.__class__.__name__) from exc

    async def _pump(self) -> None:
        reopen = False
        while self._desired:
            try:
                if reopen:
                    await self._open()
                reopen = True
                await self._consume()
            except CaptureTransientEnd:
                pass
            except CaptureUnavailable as exc:
                await self._fail(exc)
                return
            except Exception as exc:
                await self._fail(CaptureUnavailable(str(exc) or exc.__class__.__name__))
                return

            if not self._desired:
                break
            self._restarts += 1
            self._logger.info("capture.restart", restarts=self._restarts)
            await asyncio.sleep(self._restart_delay)

    async def _consume(self) -> None:
        self._streams_opened += 1
        async with aclosing(self._engine.stream()) as stream:
            async for utterance in stream:
                if not self._desired:
                    break
                if not utterance.text.strip():
                    continue
                self._logger.info("capture.utterance", text=utterance.text, language=utterance.language)
                try:
                    await self._on_utterance(utterance)
                except Exception as exc:
                    # handler faults are logged; the stream stays open
                    self._logger.exception("capture.handler.error", error=str(exc))

    async def _fail(self, exc: CaptureUnavailable) -> None:
        self._desired = False
        self._logger.error("capture.unavailable", error=str(exc))
        if self._on_error is not None:
            await self._on_error(exc)


__all__ = ["CaptureSource"]
