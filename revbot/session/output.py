from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from revbot.session.events import JobStatus, SpeechJob, SynthesisFailure
from revbot.telemetry.logging import get_logger
from revbot.tts.base import SynthesisEngine

JobCallback = Callable[[SpeechJob], Awaitable[None]]


class SpeechOutput:
    """Speaks one job at a time; a new job cancels the previous one."""

    def __init__(
        self,
        engine: SynthesisEngine,
        on_started: JobCallback | None = None,
        on_ended: JobCallback | None = None,
        on_error: JobCallback | None = None,
    ) -> None:
        self._engine = engine
        self._on_started = on_started
        self._on_ended = on_ended
        self._on_error = on_error
        self._current: SpeechJob | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._logger = get_logger(__name__)

    @property
    def speaking(self) -> bool:
        return self._current is not None and self._current.active

    @property
    def current_job(self) -> SpeechJob | None:
        return self._current

    def speak(self, text: str, locale: str) -> SpeechJob:
        self.cancel()
        job = SpeechJob(text=text, locale=locale)
        self._current = job
        task = asyncio.create_task(self._run(job), name=f"speech-job:{job.job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._logger.info("speech.job.queued", job_id=job.job_id, locale=locale, chars=len(text))
        return job

    def cancel(self) -> SpeechJob | None:
        """Request cancellation of the current job without waiting for teardown."""
        job = self._current
        if job is None or not job.active:
            return None
        job.status = JobStatus.CANCELLED
        job.cancel()
        self._logger.info("speech.job.cancel", job_id=job.job_id)
        return job

    async def aclose(self) -> None:
        self.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._engine.aclose()

    async def _run(self, job: SpeechJob) -> None:
        if job.token.cancelled:
            await self._emit(self._on_ended, job)
            return

        job.status = JobStatus.SPEAKING
        await self._emit(self._on_started, job)
        try:
            await self._engine.speak(job.text, job.locale, job.token)
        except Exception as exc:
            if job.token.cancelled:
                await self._emit(self._on_ended, job)
                return
            job.status = JobStatus.FAILED
            job.error = exc if isinstance(exc, SynthesisFailure) else SynthesisFailure(str(exc))
            self._logger.warning("speech.job.failed", job_id=job.job_id, error=str(exc))
            await self._emit(self._on_error, job)
            return

        if job.status is JobStatus.SPEAKING:
            job.status = JobStatus.COMPLETED
        self._logger.info("speech.job.ended", job_id=job.job_id, status=job.status.value)
        await self._emit(self._on_ended, job)

    @staticmethod
    async def _emit(callback: JobCallback | None, job: SpeechJob) -> None:
        if callback is not None:
            await callback(job)


__all__ = ["SpeechOutput"]
