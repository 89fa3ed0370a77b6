"""Local-calendar date helpers and monthly billing-cycle boundaries.

Cycles are half-open ``[start, end)`` windows anchored on a day of month.
When the anchor day does not exist in a month (31 in April, 30 in February)
the boundary is clamped to that month's last day. Every boundary is derived
from the original anchor day, so an anchor of 31 yields Jan 31, Feb 29,
Mar 31 rather than drifting to the 29th after February.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from typing import Any, Dict, Optional, Tuple, Union

from services.billing.config import get_billing_settings

DateLike = Union[date, datetime]


@dataclass(frozen=True, slots=True)
class BillingCycle:
    start: date
    end: date

    def contains(self, value: DateLike) -> bool:
        day = value.date() if isinstance(value, datetime) else value
        return self.start <= day < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {"cycleStart": self.start.isoformat(), "cycleEnd": self.end.isoformat()}


def _local_zone(tz: Optional[tzinfo]) -> tzinfo:
    return tz or get_billing_settings().timezone


def to_local_datetime(value: DateLike, *, tz: Optional[tzinfo] = None) -> datetime:
    """Return a naive datetime on the local wall clock.

    Aware datetimes are converted to the billing timezone; naive ones are
    assumed to be local already. Plain dates map to local midnight.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value
        return value.astimezone(_local_zone(tz)).replace(tzinfo=None)
    return as_local_midnight(value)


def as_local_midnight(value: date) -> datetime:
    return datetime.combine(value, time.min)


def to_local_date(value: DateLike, *, tz: Optional[tzinfo] = None) -> date:
    if isinstance(value, datetime):
        return to_local_datetime(value, tz=tz).date()
    return value


def local_date_string(value: DateLike, *, tz: Optional[tzinfo] = None) -> str:
    """Format ``value`` as ``YYYY-MM-DD`` using the local calendar day, not UTC."""
    return to_local_date(value, tz=tz).isoformat()


def add_months(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def anchored_date(year: int, month: int, anchor_day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor_day, last_day))


def compute_billing_cycle(anchor_date: DateLike, now: DateLike, *, tz: Optional[tzinfo] = None) -> BillingCycle:
    """Return the one-month cycle containing ``now`` for the anchor's day of month."""

    anchor_day = to_local_date(anchor_date, tz=tz).day
    today = to_local_date(now, tz=tz)

    year, month = today.year, today.month
    start = anchored_date(year, month, anchor_day)
    if today < start:
        year, month = add_months(year, month, -1)
        start = anchored_date(year, month, anchor_day)

    end_year, end_month = add_months(year, month, 1)
    return BillingCycle(start=start, end=anchored_date(end_year, end_month, anchor_day))


__all__ = [
    "BillingCycle",
    "add_months",
    "anchored_date",
    "as_local_midnight",
    "compute_billing_cycle",
    "local_date_string",
    "to_local_date",
    "to_local_datetime",
]
