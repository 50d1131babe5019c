from __future__ import annotations

from abc import ABC, abstractmethod

from revbot.session.events import CancellationToken


class SynthesisEngine(ABC):
    @abstractmethod
    async def speak(self, text: str, locale: str, token: CancellationToken) -> None:
        """Speak *text* and return when playback ends or *token* is cancelled."""

    async def aclose(self) -> None:
        return None
