from __future__ import annotations

import functools
from pathlib import Path

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-preview-native-audio-dialog"


class GeminiSettings(BaseModel):
    api_key: str | None = None
    model: str = DEFAULT_GEMINI_MODEL
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: float = 60.0


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    allowed_origin: str
    max_body_bytes: int = 2 * 1024 * 1024
    static_dir: Path


class SessionSettings(BaseModel):
    relay_url: str
    reply_timeout_seconds: float = 20.0
    speak_fallback: bool = False
    voice_enabled: bool = False


class CaptureSettings(BaseModel):
    locale: str = "hi-IN"
    vosk_model_path: str | None = None
    sample_rate: int = 16_000
    frame_ms: int = 30
    input_device: str | int | None = None


class TTSSettings(BaseModel):
    base_url: str | None = None
    api_key: str | None = None
    voices_config: Path


class TelemetrySettings(BaseModel):
    log_level: str = "INFO"
    otlp_endpoint: str | None = None


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env", ".env.local"), env_file_encoding="utf-8", extra="ignore")

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    ALLOWED_ORIGIN: str | None = None
    MAX_BODY_BYTES: int = 2 * 1024 * 1024
    STATIC_DIR: str = "public"
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = DEFAULT_GEMINI_MODEL
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SECONDS: float = 60.0
    RELAY_URL: str | None = None
    REPLY_TIMEOUT_SECONDS: float = 20.0
    SPEAK_FALLBACK: bool = False
    VOICE_ENABLED: bool = False
    RECOGNITION_LOCALE: str = "hi-IN"
    VOSK_MODEL_PATH: str | None = None
    AUDIO_SAMPLE_RATE: int = 16_000
    AUDIO_FRAME_MS: int = 30
    AUDIO_INPUT_DEVICE: str | int | None = None
    KOKORO_API_URL: str | None = None
    KOKORO_API_KEY: str | None = None
    VOICES_CONFIG: str | None = None
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None

    @staticmethod
    def _coerce_device(device: str | int | None) -> str | int | None:
        if isinstance(device, str):
            trimmed = device.strip()
            if not trimmed:
                return None
            if trimmed.isdigit():
                return int(trimmed)
            return trimmed
        return device

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings(
            api_key=self.GEMINI_API_KEY,
            model=self.GEMINI_MODEL,
            base_url=self.GEMINI_BASE_URL,
            timeout_seconds=self.GEMINI_TIMEOUT_SECONDS,
        )

    @property
    def server(self) -> ServerSettings:
        static_dir = Path(self.STATIC_DIR)
        if not static_dir.is_absolute():
            static_dir = project_root() / static_dir
        return ServerSettings(
            host=self.HOST,
            port=self.PORT,
            allowed_origin=self.ALLOWED_ORIGIN or f"http://localhost:{self.PORT}",
            max_body_bytes=self.MAX_BODY_BYTES,
            static_dir=static_dir,
        )

    @property
    def session(self) -> SessionSettings:
        return SessionSettings(
            relay_url=self.RELAY_URL or f"http://localhost:{self.PORT}/api/chat",
            reply_timeout_seconds=self.REPLY_TIMEOUT_SECONDS,
            speak_fallback=self.SPEAK_FALLBACK,
            voice_enabled=self.VOICE_ENABLED,
        )

    @property
    def capture(self) -> CaptureSettings:
        return CaptureSettings(
            locale=self.RECOGNITION_LOCALE,
            vosk_model_path=self.VOSK_MODEL_PATH,
            sample_rate=self.AUDIO_SAMPLE_RATE,
            frame_ms=self.AUDIO_FRAME_MS,
            input_device=self._coerce_device(self.AUDIO_INPUT_DEVICE),
        )

    @property
    def tts(self) -> TTSSettings:
        voices = Path(self.VOICES_CONFIG) if self.VOICES_CONFIG else project_root() / "config" / "voices.yml"
        return TTSSettings(base_url=self.KOKORO_API_URL, api_key=self.KOKORO_API_KEY, voices_config=voices)

    @property
    def telemetry(self) -> TelemetrySettings:
        return TelemetrySettings(log_level=self.LOG_LEVEL, otlp_endpoint=self.OTEL_EXPORTER_OTLP_ENDPOINT)


@functools.lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    return AppSettings()


def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


__all__ = ["AppSettings", "load_settings", "project_root"]
