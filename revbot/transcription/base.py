from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from revbot.session.events import Utterance


class RecognitionEngine(ABC):
    async def open(self) -> None:
        """Acquire the input device before a stream is read.

        Raises ``CaptureUnavailable`` when the device is missing or access
        was denied, so callers learn about it before announcing capture.
        """
        return None

    @abstractmethod
    def stream(self) -> AsyncIterator[Utterance]:
        """Open a recognition stream and yield one utterance per final result.

        Returning ends the stream; raising ``CaptureUnavailable`` means the
        capability is gone and capture must not be retried automatically.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying device / model."""
