"""Environment-driven billing settings."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.env import env_float, env_int, env_str
from core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_COMMISSION_RATE_PER_HOUR = 5000
DEFAULT_TRIAL_DAYS = 30
DEFAULT_TIMEZONE = "America/Asuncion"
DEFAULT_CURRENCY = "PYG"
DEFAULT_FETCH_TIMEOUT_SECONDS = 8.0
DEFAULT_CACHE_TTL_SECONDS = 300


@dataclass(frozen=True, slots=True)
class BillingSettings:
    commission_rate_per_hour: int
    trial_days: int
    timezone: ZoneInfo
    currency: str
    fetch_timeout_seconds: float
    cache_ttl_seconds: int


def _resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown BILLING_TIMEZONE '%s'. Falling back to %s.", name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


@lru_cache(maxsize=1)
def get_billing_settings() -> BillingSettings:
    """Read billing settings once; call ``clear_billing_settings_cache`` after env changes."""
    return BillingSettings(
        commission_rate_per_hour=env_int("BILLING_COMMISSION_RATE_PER_HOUR", DEFAULT_COMMISSION_RATE_PER_HOUR, minimum=0),
        trial_days=env_int("BILLING_TRIAL_DAYS", DEFAULT_TRIAL_DAYS, minimum=0),
        timezone=_resolve_timezone(env_str("BILLING_TIMEZONE", DEFAULT_TIMEZONE) or DEFAULT_TIMEZONE),
        currency=(env_str("BILLING_CURRENCY", DEFAULT_CURRENCY) or DEFAULT_CURRENCY).upper(),
        fetch_timeout_seconds=env_float("BILLING_FETCH_TIMEOUT_SECONDS", DEFAULT_FETCH_TIMEOUT_SECONDS, minimum=0.1),
        cache_ttl_seconds=env_int("BILLING_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS, minimum=1),
    )


def clear_billing_settings_cache() -> None:
    get_billing_settings.cache_clear()


__all__ = ["BillingSettings", "clear_billing_settings_cache", "get_billing_settings"]
