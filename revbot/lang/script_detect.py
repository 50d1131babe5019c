from __future__ import annotations

import regex as re

DEFAULT_LOCALE = "hi-IN"

# First match wins, so the order here is part of the contract.
SCRIPT_LOCALES: tuple[tuple[str, re.Pattern[str], str], ...] = (
    ("devanagari", re.compile(r"[\u0900-\u097F]"), "hi-IN"),
    ("telugu", re.compile(r"[\u0C00-\u0C7F]"), "te-IN"),
    ("tamil", re.compile(r"[\u0B80-\u0BFF]"), "ta-IN"),
    ("gujarati", re.compile(r"[\u0A80-\u0AFF]"), "gu-IN"),
    ("bengali", re.compile(r"[\u0980-\u09FF]"), "bn-IN"),
)


def detect_script(text: str | None) -> str | None:
    """Return the name of the first recognised script found in *text*."""
    if not text or not isinstance(text, str):
        return None
    for name, pattern, _locale in SCRIPT_LOCALES:
        if pattern.search(text):
            return name
    return None


def detect_voice_locale(text: str | None, default: str = DEFAULT_LOCALE) -> str:
    """Pick the speech locale for *text*; falls back to *default* (Hindi)."""
    if not text or not isinstance(text, str):
        return default
    for _name, pattern, locale in SCRIPT_LOCALES:
        if pattern.search(text):
            return locale
    return default


__all__ = ["DEFAULT_LOCALE", "SCRIPT_LOCALES", "detect_script", "detect_voice_locale"]
