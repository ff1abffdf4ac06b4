from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%s below minimum %s, using %s", name, value, minimum, default)
        return default
    return value


def log_level() -> str:
    return (os.getenv("LOG_LEVEL") or "INFO").strip().upper()


def default_page_size() -> int:
    return _int_env("DEFAULT_PAGE_SIZE", 20)


def new_high_lookback_months() -> int:
    return _int_env("NEW_HIGH_LOOKBACK_MONTHS", 3)


def max_history_intervals() -> int:
    return _int_env("MAX_HISTORY_INTERVALS", 200)
