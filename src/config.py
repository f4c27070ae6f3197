"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used by the server (cache variant,
entry lifetime ceiling, block width, value size limit and log level).
"""

from __future__ import annotations

import os


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# Cache
CACHE_VARIANT = _env_str("CACHE_VARIANT", "block").lower()
CACHE_MAX_ENTRY_LIFE_MS = _env_int("CACHE_MAX_ENTRY_LIFE_MS", 300_000)
CACHE_BLOCK_WIDTH = _env_float("CACHE_BLOCK_WIDTH", 2.0)

# Limits / output
MAX_VALUE_CHARS = _env_int("MAX_VALUE_CHARS", 200_000)
LOG_LEVEL = _env_str("LOG_LEVEL", "INFO").upper()
