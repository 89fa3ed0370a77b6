"""Usage-based commission math over completed bookings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from core.billing_constants import BookingStatus
from schemas.billing import BookingRecord
from services.billing.config import get_billing_settings
from services.billing.cycle import DateLike, to_local_date

_MINUTES_PER_HOUR = Decimal(60)
_DEFAULT_DURATION_MINUTES = 60

Rate = Union[int, Decimal]


def _parse_clock_minutes(value: Optional[str]) -> Optional[int]:
    """Convert ``HH:MM[:SS]`` into minutes after midnight."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def booking_duration_minutes(start_time: Optional[str], end_time: Optional[str]) -> int:
    """Billable minutes for a booking; missing, malformed or non-positive spans count as one hour."""
    start = _parse_clock_minutes(start_time)
    end = _parse_clock_minutes(end_time)
    if start is None or end is None:
        return _DEFAULT_DURATION_MINUTES
    span = end - start
    if span <= 0:
        return _DEFAULT_DURATION_MINUTES
    return span


def booking_duration_hours(start_time: Optional[str], end_time: Optional[str]) -> Decimal:
    return Decimal(booking_duration_minutes(start_time, end_time)) / _MINUTES_PER_HOUR


def _resolve_rate(rate_per_hour: Optional[Rate]) -> Decimal:
    if rate_per_hour is None:
        return Decimal(get_billing_settings().commission_rate_per_hour)
    return Decimal(rate_per_hour)


def booking_commission(booking: BookingRecord, rate_per_hour: Optional[Rate] = None) -> Decimal:
    """Unrounded commission for a single booking."""
    rate = _resolve_rate(rate_per_hour)
    minutes = booking_duration_minutes(booking.start_time, booking.end_time)
    return Decimal(minutes) * rate / _MINUTES_PER_HOUR


def round_amount(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def filter_cycle_bookings(
    bookings: Iterable[BookingRecord],
    window_start: DateLike,
    window_end: DateLike,
) -> List[BookingRecord]:
    """Completed bookings dated inside ``[window_start, window_end)``."""
    start = to_local_date(window_start)
    end = to_local_date(window_end)
    return [
        booking
        for booking in bookings
        if booking.status == BookingStatus.COMPLETED and start <= booking.date < end
    ]


def compute_commission(
    bookings: Iterable[BookingRecord],
    window_start: DateLike,
    window_end: DateLike,
    trial_cutoff: Optional[DateLike] = None,
    rate_per_hour: Optional[Rate] = None,
) -> int:
    """Commission owed for completed bookings in the window.

    Bookings dated on or before ``trial_cutoff`` are free; only bookings
    strictly after it are billed. The total is rounded to whole currency units.
    """
    rate = _resolve_rate(rate_per_hour)
    cutoff: Optional[date] = to_local_date(trial_cutoff) if trial_cutoff is not None else None
    total = Decimal(0)
    for booking in filter_cycle_bookings(bookings, window_start, window_end):
        if cutoff is not None and booking.date <= cutoff:
            continue
        total += booking_commission(booking, rate)
    return round_amount(total)


@dataclass(slots=True)
class VenueCommissionSummary:
    """Aggregate shown on the admin venue table."""

    total_revenue: int
    total_bookings: int
    platform_commission: int
    revenue_by_court: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "totalRevenue": self.total_revenue,
            "totalBookings": self.total_bookings,
            "platformCommission": self.platform_commission,
            "revenueByCourt": dict(self.revenue_by_court),
        }


def summarize_venue_commission(
    bookings: Sequence[BookingRecord],
    *,
    court_ids: Iterable[str] = (),
    rate_per_hour: Optional[Rate] = None,
) -> VenueCommissionSummary:
    """Lifetime figures for one venue over every non-cancelled booking."""
    rate = _resolve_rate(rate_per_hour)
    counted = [booking for booking in bookings if booking.status != BookingStatus.CANCELLED]
    revenue_by_court: Dict[str, int] = {str(court_id): 0 for court_id in court_ids}
    commission = Decimal(0)
    for booking in counted:
        commission += booking_commission(booking, rate)
        if booking.court_id is not None:
            key = str(booking.court_id)
            if key in revenue_by_court:
                revenue_by_court[key] += booking.price
    return VenueCommissionSummary(
        total_revenue=sum(booking.price for booking in counted),
        total_bookings=len(counted),
        platform_commission=round_amount(commission),
        revenue_by_court=revenue_by_court,
    )


__all__ = [
    "VenueCommissionSummary",
    "booking_commission",
    "booking_duration_hours",
    "booking_duration_minutes",
    "compute_commission",
    "filter_cycle_bookings",
    "round_amount",
    "summarize_venue_commission",
]
