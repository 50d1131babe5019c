from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from itertools import count
from typing import Any, Protocol


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class DialogueState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    THINKING = "THINKING"
    SPEAKING = "SPEAKING"


class JobStatus(str, Enum):
    PENDING = "pending"
    SPEAKING = "speaking"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Utterance:
    text: str
    language: str
    ts: float = field(default_factory=time.time)


class CancellationToken:
    """Cancellation handle owned by exactly one speech job."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


_job_ids = count(1)


@dataclass(slots=True, eq=False)
class SpeechJob:
    text: str
    locale: str
    token: CancellationToken = field(default_factory=CancellationToken)
    job_id: int = field(default_factory=lambda: next(_job_ids))
    status: JobStatus = JobStatus.PENDING
    error: BaseException | None = None

    @property
    def active(self) -> bool:
        return self.status in (JobStatus.PENDING, JobStatus.SPEAKING)

    def cancel(self) -> None:
        self.token.cancel()


class StatusSink(Protocol):
    async def publish_state(self, state: str, payload: dict[str, Any] | None = None) -> None: ...


class VoiceRelayError(Exception):
    """Base for every failure the dialogue session absorbs."""


class CaptureUnavailable(VoiceRelayError):
    """Speech capture is missing or permission was denied."""


class CaptureTransientEnd(VoiceRelayError):
    """The recognition stream ended on its own; restarted, never reported."""


class ReplyFailure(VoiceRelayError):
    """The remote reply call failed or returned nothing usable."""


class EmptyReply(ReplyFailure):
    """The remote reply call succeeded but carried no text."""


class SynthesisFailure(VoiceRelayError):
    """The speech engine reported an error."""


__all__ = [
    "SessionState",
    "DialogueState",
    "JobStatus",
    "Utterance",
    "CancellationToken",
    "SpeechJob",
    "StatusSink",
    "VoiceRelayError",
    "CaptureUnavailable",
    "CaptureTransientEnd",
    "ReplyFailure",
    "EmptyReply",
    "SynthesisFailure",
]
