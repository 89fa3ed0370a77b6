"""Derived booking status: reservations that already ended count as completed."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from core.billing_constants import BookingStatus
from schemas.billing import BookingRecord
from services.billing.cycle import DateLike, as_local_midnight, to_local_datetime


def booking_ends_at(booking: BookingRecord) -> Optional[datetime]:
    """Local end of the booking, or ``None`` when ``end_time`` is unusable."""
    if not booking.end_time:
        return None
    parts = booking.end_time.split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 else 0
        seconds = int(parts[2]) if len(parts) > 2 else 0
    except ValueError:
        return None
    if not (0 <= hours <= 24 and 0 <= minutes < 60 and 0 <= seconds < 60):
        return None
    return as_local_midnight(booking.date) + timedelta(hours=hours, minutes=minutes, seconds=seconds)


def derive_booking_status(booking: BookingRecord, now: DateLike) -> BookingStatus:
    if booking.status != BookingStatus.ACTIVE:
        return booking.status
    ends_at = booking_ends_at(booking)
    if ends_at is not None and ends_at < to_local_datetime(now):
        return BookingStatus.COMPLETED
    return booking.status


def apply_derived_statuses(
    bookings: Iterable[BookingRecord],
    now: DateLike,
) -> Tuple[List[BookingRecord], List[uuid.UUID]]:
    """Return bookings with derived statuses plus the ids that were auto-closed."""
    resolved: List[BookingRecord] = []
    closed: List[uuid.UUID] = []
    for booking in bookings:
        status = derive_booking_status(booking, now)
        if status != booking.status:
            closed.append(booking.id)
            booking = booking.model_copy(update={"status": status})
        resolved.append(booking)
    return resolved, closed


__all__ = ["apply_derived_statuses", "booking_ends_at", "derive_booking_status"]
