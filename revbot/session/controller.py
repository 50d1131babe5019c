from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from revbot.lang.script_detect import DEFAULT_LOCALE, detect_voice_locale
from revbot.persona import FALLBACK_PHRASE
from revbot.session.capture import CaptureSource
from revbot.session.events import (
    CaptureUnavailable,
    DialogueState,
    EmptyReply,
    ReplyFailure,
    SessionState,
    SpeechJob,
    StatusSink,
    Utterance,
)
from revbot.session.output import SpeechOutput
from revbot.telemetry.logging import get_logger
from revbot.transcription.base import RecognitionEngine
from revbot.tts.base import SynthesisEngine

ReplyFunction = Callable[[str], Awaitable[str]]

STATUS_LISTENING = "Listening..."
STATUS_THINKING = "Thinking..."
STATUS_SPEAKING = "Speaking..."
STATUS_NETWORK_ERROR = "Network error"
STATUS_NO_REPLY = "No reply, please try again"


class DialogueController:
    """Turn-taking between speech capture, the remote reply call and playback.

    All handlers run on the event loop that owns the controller, so the
    session flag is never touched concurrently. Only one reply call can be
    in flight: the capture pump awaits ``_on_utterance`` before reading the
    next result, which queues utterances that arrive while thinking.
    """

    def __init__(
        self,
        recognizer: RecognitionEngine,
        synthesizer: SynthesisEngine,
        reply: ReplyFunction,
        status: StatusSink | None = None,
        reply_timeout: float | None = 20.0,
        speak_fallback: bool = False,
        default_locale: str = DEFAULT_LOCALE,
        restart_delay: float = 0.1,
    ) -> None:
        self._reply = reply
        self._status_sink = status
        self._reply_timeout = reply_timeout
        self._speak_fallback = speak_fallback
        self._default_locale = default_locale
        self._capture = CaptureSource(
            recognizer,
            on_utterance=self._on_utterance,
            on_error=self._on_capture_error,
            restart_delay=restart_delay,
        )
        self._output = SpeechOutput(
            synthesizer,
            on_started=self._on_speech_started,
            on_ended=self._on_speech_ended,
            on_error=self._on_speech_error,
        )
        self._session = SessionState.IDLE
        self._state = DialogueState.IDLE
        self._job: SpeechJob | None = None
        self._status = ""
        self._logger = get_logger(__name__)

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def state(self) -> DialogueState:
        return self._state

    @property
    def status(self) -> str:
        return self._status

    @property
    def capture(self) -> CaptureSource:
        return self._capture

    @property
    def output(self) -> SpeechOutput:
        return self._output

    def attach_status(self, status: StatusSink) -> None:
        if self._status_sink is None:
            self._status_sink = status

    def snapshot(self) -> dict[str, Any]:
        return {"session": self._session.value, "state": self._state.value, "status": self._status}

    async def toggle(self) -> SessionState:
        if self._session is SessionState.ACTIVE:
            await self.stop()
        else:
            await self.start()
        return self._session

    async def start(self) -> None:
        if self._session is SessionState.ACTIVE:
            return
        self._session = SessionState.ACTIVE
        if await self._resume_capture():
            await self.set_state(DialogueState.LISTENING, STATUS_LISTENING)

    async def stop(self) -> None:
        if self._session is SessionState.IDLE and self._state is DialogueState.IDLE:
            return
        self._session = SessionState.IDLE
        self._job = None
        self._output.cancel()
        await self._capture.stop()
        await self.set_state(DialogueState.IDLE, "")

    async def aclose(self) -> None:
        await self.stop()
        await self._output.aclose()

    async def set_state(self, state: DialogueState, status: str, payload: dict[str, Any] | None = None) -> None:
        previous = self._state
        self._state = state
        self._status = status
        self._logger.debug("session.state.transition", previous=previous.value, state=state.value, status=status)
        if self._status_sink is not None:
            message = {"status": status, "session": self._session.value, **(payload or {})}
            await self._status_sink.publish_state(state.value, message)

    async def _on_utterance(self, utterance: Utterance) -> None:
        if self._session is not SessionState.ACTIVE:
            return

        if self._output.speaking:
            interrupted = self._output.cancel()
            self._job = None
            self._logger.info(
                "session.barge_in",
                job_id=interrupted.job_id if interrupted else None,
                text=utterance.text,
            )

        await self.set_state(DialogueState.THINKING, STATUS_THINKING, {"transcript": utterance.text})
        try:
            reply = await self._request_reply(utterance.text)
        except ReplyFailure as exc:
            await self._on_reply_failure(exc)
            return

        if self._session is not SessionState.ACTIVE:
            return
        self._logger.info("session.reply", chars=len(reply))
        job = self._start_speaking(reply)
        await self.set_state(
            DialogueState.SPEAKING,
            STATUS_SPEAKING,
            {"text": reply, "locale": job.locale, "job_id": job.job_id},
        )

    async def _request_reply(self, text: str) -> str:
        try:
            if self._reply_timeout is None:
                reply = await self._reply(text)
            else:
                reply = await asyncio.wait_for(self._reply(text), timeout=self._reply_timeout)
        except ReplyFailure:
            raise
        except asyncio.TimeoutError as exc:
            raise ReplyFailure(f"no reply within {self._reply_timeout}s") from exc
        except Exception as exc:
            raise ReplyFailure(str(exc) or exc.__class__.__name__) from exc

        if not isinstance(reply, str) or not reply.strip():
            raise EmptyReply("empty reply")
        return reply.strip()

    async def _on_reply_failure(self, exc: ReplyFailure) -> None:
        self._logger.warning("session.reply.failed", error=str(exc))
        if self._session is not SessionState.ACTIVE:
            return
        status = STATUS_NO_REPLY if isinstance(exc, EmptyReply) else STATUS_NETWORK_ERROR
        if self._speak_fallback:
            self._start_speaking(FALLBACK_PHRASE)
            await self.set_state(
                DialogueState.SPEAKING,
                status,
                {"text": FALLBACK_PHRASE, "fallback": True, "error": str(exc)},
            )
            return
        if await self._resume_capture():
            await self.set_state(DialogueState.LISTENING, status, {"error": str(exc)})

    async def _resume_capture(self) -> bool:
        """Make sure capture is running; False when the session can no longer listen."""
        try:
            await self._capture.start()
        except CaptureUnavailable as exc:
            await self._on_capture_error(exc)
            return False
        return self._session is SessionState.ACTIVE

    def _start_speaking(self, text: str) -> SpeechJob:
        locale = detect_voice_locale(text, default=self._default_locale)
        job = self._output.speak(text, locale)
        self._job = job
        return job

    async def _on_speech_started(self, job: SpeechJob) -> None:
        self._logger.debug("session.speech.started", job_id=job.job_id, locale=job.locale)

    async def _on_speech_ended(self, job: SpeechJob) -> None:
        if job is not self._job:
            return
        self._job = None
        if self._session is not SessionState.ACTIVE or self._state is not DialogueState.SPEAKING:
            return
        if await self._resume_capture():
            await self.set_state(DialogueState.LISTENING, STATUS_LISTENING, {"job_status": job.status.value})

    async def _on_speech_error(self, job: SpeechJob) -> None:
        self._logger.warning("session.speech.failed", job_id=job.job_id, error=str(job.error))
        if job is not self._job:
            return
        self._job = None
        if self._session is not SessionState.ACTIVE or self._state is not DialogueState.SPEAKING:
            return
        if await self._resume_capture():
            await self.set_state(DialogueState.LISTENING, STATUS_LISTENING, {"error": str(job.error)})

    async def _on_capture_error(self, exc: CaptureUnavailable) -> None:
        self._session = SessionState.IDLE
        self._job = None
        self._output.cancel()
        await self._capture.stop()
        await self.set_state(DialogueState.IDLE, f"Error: {exc}", {"error": str(exc)})


__all__ = ["DialogueController", "ReplyFunction"]
