from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

from .store import default_db_path

DEFAULT_TICK_SECONDS = 60.0
_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class AppConfig:
    db_path: Path
    tick_seconds: float = DEFAULT_TICK_SECONDS
    notify: bool = True
    speak: bool = False
    log_level: str = "INFO"
    log_file: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        env = os.environ if environ is None else environ
        db_text = env.get("FOCUSGATE_DB", "").strip()
        log_file_text = env.get("FOCUSGATE_LOG_FILE", "").strip()
        return cls(
            db_path=Path(db_text) if db_text else default_db_path(),
            tick_seconds=_read_seconds(env.get("FOCUSGATE_TICK_SECONDS")),
            notify=_read_flag(env.get("FOCUSGATE_NOTIFY"), default=True),
            speak=_read_flag(env.get("FOCUSGATE_SPEAK"), default=False),
            log_level=_read_level(env.get("FOCUSGATE_LOG_LEVEL")),
            log_file=Path(log_file_text) if log_file_text else None,
        )


def _read_seconds(raw: str | None) -> float:
    try:
        value = float((raw or "").strip())
    except ValueError:
        return DEFAULT_TICK_SECONDS
    if value != value or value < 1:
        return DEFAULT_TICK_SECONDS
    return value


def _read_flag(raw: str | None, default: bool) -> bool:
    text = (raw or "").strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return default


def _read_level(raw: str | None) -> str:
    text = (raw or "").strip().upper()
    if text in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return text
    return "INFO"
