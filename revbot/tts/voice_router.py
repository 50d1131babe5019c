from __future__ import annotations

import functools
from pathlib import Path
from typing import Any, Iterable

import yaml

from revbot.config import project_root
from revbot.lang.script_detect import DEFAULT_LOCALE


class VoiceRouter:
    """Maps a speech locale to the synthesis parameters for that voice."""

    def __init__(self, raw_config: dict[str, Any]) -> None:
        self._defaults: dict[str, Any] = dict(raw_config.get("defaults") or {})
        self._voices: dict[str, dict[str, Any]] = dict(raw_config.get("voices") or {})
        if not self._voices:
            raise ValueError("Voice config defines no voices")
        default_locale = raw_config.get("default_locale") or DEFAULT_LOCALE
        if default_locale not in self._voices:
            default_locale = next(iter(self._voices))
        self._default_locale = default_locale

    @property
    def default_locale(self) -> str:
        return self._default_locale

    def locales(self) -> Iterable[str]:
        return self._voices.keys()

    def resolve(self, locale: str | None) -> tuple[dict[str, Any], str]:
        """Return the flattened voice parameters and the locale actually used."""
        resolved = locale if locale in self._voices else self._default_locale
        slot = self._voices[resolved] or {}
        if not isinstance(slot, dict):
            raise ValueError(f"Voice entry for '{resolved}' must be a mapping")
        params: dict[str, Any] = {**self._defaults, **slot}
        if "voice" not in params:
            raise ValueError(f"No voice configured for locale '{resolved}'")
        params.setdefault("language", resolved.split("-")[0])
        return params, resolved


def load_router_from(path: Path) -> VoiceRouter:
    if not path.exists():
        raise FileNotFoundError(path)
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name} must define a mapping")
    return VoiceRouter(raw)


@functools.lru_cache(maxsize=1)
def load_router() -> VoiceRouter:
    return load_router_from(project_root() / "config" / "voices.yml")


__all__ = ["VoiceRouter", "load_router", "load_router_from"]
