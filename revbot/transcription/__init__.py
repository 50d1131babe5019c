try:
    from revbot.transcription.vosk import VoskRecognitionEngine
except (ModuleNotFoundError, OSError):  # pragma: no cover - optional dependency / missing PortAudio
    VoskRecognitionEngine = None  # type: ignore[assignment,misc]

__all__ = ["VoskRecognitionEngine"]
