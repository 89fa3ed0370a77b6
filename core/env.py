"""Typed environment variable readers.

Invalid values never raise: they are logged and the default is used, so a
typo in deployment config degrades to the documented behaviour.
"""

from __future__ import annotations

import os
from typing import Callable, Optional, TypeVar

from core.logging import get_logger

N = TypeVar("N", int, float)

logger = get_logger(__name__)


def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    """Stripped value of ``key``; unset and blank both yield ``default``."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_number(key: str, default: N, cast: Callable[[str], N], minimum: Optional[N]) -> N:
    raw = env_str(key)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Invalid %s value '%s'. Falling back to %s.", key, raw, default)
        return default
    if minimum is not None and value < minimum:
        logger.warning("%s=%s is below the minimum %s. Falling back to %s.", key, value, minimum, default)
        return default
    return value


def env_int(key: str, default: int, *, minimum: Optional[int] = None) -> int:
    return _env_number(key, default, int, minimum)


def env_float(key: str, default: float, *, minimum: Optional[float] = None) -> float:
    return _env_number(key, default, float, minimum)


__all__ = ["env_float", "env_int", "env_str"]
