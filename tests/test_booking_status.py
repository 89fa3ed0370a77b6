from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from core.billing_constants import BookingStatus
from schemas.billing import BookingRecord
from services.billing.bookings import apply_derived_statuses, booking_ends_at, derive_booking_status


def _booking(end: Optional[str], *, status: str = "ACTIVE", day: date = date(2024, 3, 5)) -> BookingRecord:
    return BookingRecord(id=uuid.uuid4(), date=day, start_time="18:00", end_time=end, status=status)


def test_finished_active_booking_is_completed() -> None:
    booking = _booking("19:00")

    assert booking_ends_at(booking) == datetime(2024, 3, 5, 19, 0)
    assert derive_booking_status(booking, datetime(2024, 3, 5, 19, 1)) == BookingStatus.COMPLETED
    assert derive_booking_status(booking, datetime(2024, 3, 5, 18, 30)) == BookingStatus.ACTIVE


def test_end_at_midnight_rolls_to_next_day() -> None:
    booking = _booking("24:00")

    assert booking_ends_at(booking) == datetime(2024, 3, 6, 0, 0)


def test_missing_or_malformed_end_time_stays_active() -> None:
    now = datetime(2025, 1, 1)

    assert derive_booking_status(_booking(None), now) == BookingStatus.ACTIVE
    assert derive_booking_status(_booking("late"), now) == BookingStatus.ACTIVE
    assert derive_booking_status(_booking("19:75"), now) == BookingStatus.ACTIVE


def test_terminal_statuses_are_untouched() -> None:
    now = datetime(2025, 1, 1)

    assert derive_booking_status(_booking("19:00", status="CANCELLED"), now) == BookingStatus.CANCELLED
    assert derive_booking_status(_booking("19:00", status="COMPLETED"), now) == BookingStatus.COMPLETED


def test_aware_now_is_compared_on_local_wall_clock() -> None:
    booking = _booking("21:00")

    # 23:30 UTC is 20:30 in Asuncion, so the 21:00 booking has not ended yet.
    assert derive_booking_status(booking, datetime(2024, 3, 5, 23, 30, tzinfo=timezone.utc)) == BookingStatus.ACTIVE
    assert derive_booking_status(booking, datetime(2024, 3, 6, 0, 30, tzinfo=timezone.utc)) == BookingStatus.COMPLETED


def test_apply_derived_statuses_reports_closed_ids() -> None:
    done = _booking("10:00", day=date(2024, 3, 1))
    upcoming = _booking("10:00", day=date(2024, 3, 20))
    cancelled = _booking("10:00", status="CANCELLED", day=date(2024, 3, 1))

    resolved, closed = apply_derived_statuses([done, upcoming, cancelled], datetime(2024, 3, 10))

    assert closed == [done.id]
    assert [item.status for item in resolved] == [
        BookingStatus.COMPLETED,
        BookingStatus.ACTIVE,
        BookingStatus.CANCELLED,
    ]
    assert done.status == BookingStatus.ACTIVE
