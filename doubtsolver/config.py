from __future__ import annotations

import dataclasses
import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


@dataclasses.dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    port: int = 8080
    error_excerpt_chars: int = 1000
    default_language: str = "English"

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            log_level=(os.environ.get("DOUBTSOLVER_LOG_LEVEL") or "INFO").strip().upper(),
            port=_env_int("DOUBTSOLVER_PORT", 8080),
            error_excerpt_chars=max(0, _env_int("DOUBTSOLVER_ERROR_EXCERPT_CHARS", 1000)),
            default_language=(os.environ.get("DOUBTSOLVER_LANGUAGE") or "English").strip(),
        )


def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    settings = settings or get_settings()
    logger = logging.getLogger("doubtsolver")
    logger.setLevel(settings.log_level)
    logger.handlers.clear()

    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(sh)
    return logger
