"""Prometheus counters for billing resolution and auto-upgrade outcomes."""

from __future__ import annotations

from typing import Optional

from core.logging import get_logger

logger = get_logger(__name__)

try:  # pragma: no cover - optional dependency
    from prometheus_client import Counter  # type: ignore
except ImportError:  # pragma: no cover - optional dependency
    Counter = None  # type: ignore

_RESOLUTION_COUNTER: Optional["Counter"] = None  # type: ignore[name-defined]
_AUTO_UPGRADE_COUNTER: Optional["Counter"] = None  # type: ignore[name-defined]
_REFRESH_COUNTER: Optional["Counter"] = None  # type: ignore[name-defined]

if Counter is not None:
    try:
        _RESOLUTION_COUNTER = Counter(
            "billing_subscription_resolution_total",
            "Subscription lifecycle resolutions by resulting state.",
            ("state",),
        )
        _AUTO_UPGRADE_COUNTER = Counter(
            "billing_auto_upgrade_total",
            "Trial auto-upgrade attempts by outcome.",
            ("outcome",),
        )
        _REFRESH_COUNTER = Counter(
            "billing_refresh_total",
            "Billing overview refreshes by outcome.",
            ("outcome",),
        )
    except ValueError:  # pragma: no cover - duplicate registration during reload
        logger.debug("Billing metrics already registered; reusing collectors.")


def record_resolution(state: str) -> None:
    if _RESOLUTION_COUNTER is None:
        return
    _RESOLUTION_COUNTER.labels(state=state or "unknown").inc()


def record_auto_upgrade(outcome: str) -> None:
    if _AUTO_UPGRADE_COUNTER is None:
        return
    _AUTO_UPGRADE_COUNTER.labels(outcome=outcome or "unknown").inc()


def record_refresh(outcome: str) -> None:
    if _REFRESH_COUNTER is None:
        return
    _REFRESH_COUNTER.labels(outcome=outcome or "unknown").inc()


__all__ = ["record_auto_upgrade", "record_refresh", "record_resolution"]
