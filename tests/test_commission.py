from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from core.billing_constants import BookingStatus
from schemas.billing import BookingRecord
from services.billing.commission import (
    booking_commission,
    booking_duration_hours,
    booking_duration_minutes,
    compute_commission,
    filter_cycle_bookings,
    summarize_venue_commission,
)
from services.billing.config import clear_billing_settings_cache

_WINDOW_START = date(2024, 3, 1)
_WINDOW_END = date(2024, 4, 1)


def _booking(
    day: date,
    start: Optional[str] = "18:00",
    end: Optional[str] = "19:00",
    *,
    status: str = "COMPLETED",
    price: int = 100000,
    court_id: Optional[uuid.UUID] = None,
) -> BookingRecord:
    return BookingRecord(
        id=uuid.uuid4(),
        venue_id=uuid.uuid4(),
        court_id=court_id,
        date=day,
        start_time=start,
        end_time=end,
        price=price,
        status=status,
    )


def test_three_one_hour_bookings_after_trial_cutoff_are_billed() -> None:
    bookings = [_booking(date(2024, 3, day)) for day in (5, 6, 7)]

    total = compute_commission(bookings, _WINDOW_START, _WINDOW_END, trial_cutoff=date(2024, 3, 1), rate_per_hour=5000)

    assert total == 15000


def test_bookings_on_or_before_trial_cutoff_are_free() -> None:
    bookings = [_booking(date(2024, 3, day)) for day in (5, 6, 7)]

    total = compute_commission(bookings, _WINDOW_START, _WINDOW_END, trial_cutoff=date(2024, 3, 7), rate_per_hour=5000)

    assert total == 0


def test_cutoff_day_itself_is_free_but_next_day_is_billed() -> None:
    bookings = [_booking(date(2024, 3, 10)), _booking(date(2024, 3, 11))]

    total = compute_commission(bookings, _WINDOW_START, _WINDOW_END, trial_cutoff=date(2024, 3, 10), rate_per_hour=5000)

    assert total == 5000


def test_only_completed_bookings_inside_window_count() -> None:
    bookings = [
        _booking(date(2024, 3, 2)),
        _booking(date(2024, 3, 3), status="ACTIVE"),
        _booking(date(2024, 3, 4), status="CANCELLED"),
        _booking(date(2024, 2, 29)),
        _booking(date(2024, 4, 1)),
    ]

    kept = filter_cycle_bookings(bookings, _WINDOW_START, _WINDOW_END)

    assert [booking.date for booking in kept] == [date(2024, 3, 2)]
    assert compute_commission(bookings, _WINDOW_START, _WINDOW_END, rate_per_hour=5000) == 5000


def test_commission_is_proportional_to_duration() -> None:
    ninety = _booking(date(2024, 3, 2), "08:00", "09:30")
    two_hours = _booking(date(2024, 3, 3), "20:00", "22:00")

    assert compute_commission([ninety], _WINDOW_START, _WINDOW_END, rate_per_hour=5000) == 7500
    assert compute_commission([two_hours], _WINDOW_START, _WINDOW_END, rate_per_hour=5000) == 10000
    assert compute_commission([ninety, two_hours], _WINDOW_START, _WINDOW_END, rate_per_hour=5000) == 17500


def test_total_is_rounded_once_half_up() -> None:
    # 50 minutes at 5000/h is 4166.67; two of them sum to 8333.33 before rounding.
    bookings = [_booking(date(2024, 3, 2), "10:00", "10:50"), _booking(date(2024, 3, 3), "10:00", "10:50")]

    assert compute_commission(bookings, _WINDOW_START, _WINDOW_END, rate_per_hour=5000) == 8333
    assert compute_commission(bookings[:1], _WINDOW_START, _WINDOW_END, rate_per_hour=3) == 3  # 2.5 rounds up


@pytest.mark.parametrize(
    ("start", "end"),
    [
        (None, "19:00"),
        ("18:00", None),
        ("", ""),
        ("eighteen", "19:00"),
        ("18:00", "17:00"),
        ("18:00", "18:00"),
        ("25:00", "26:00"),
    ],
)
def test_unusable_times_default_to_one_hour(start: Optional[str], end: Optional[str]) -> None:
    assert booking_duration_minutes(start, end) == 60
    assert compute_commission([_booking(date(2024, 3, 2), start, end)], _WINDOW_START, _WINDOW_END, rate_per_hour=5000) == 5000


def test_duration_accepts_seconds_component() -> None:
    assert booking_duration_minutes("18:00:00", "19:30:00") == 90
    assert booking_duration_hours("18:00", "19:30") == Decimal("1.5")


def test_empty_input_yields_zero() -> None:
    assert compute_commission([], _WINDOW_START, _WINDOW_END) == 0


def test_default_rate_comes_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    booking = _booking(date(2024, 3, 2))
    assert booking_commission(booking) == Decimal(5000)

    monkeypatch.setenv("BILLING_COMMISSION_RATE_PER_HOUR", "7000")
    clear_billing_settings_cache()

    assert compute_commission([booking], _WINDOW_START, _WINDOW_END) == 7000


def test_venue_summary_counts_non_cancelled_bookings_per_court() -> None:
    court_a, court_b, idle_court = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    bookings = [
        _booking(date(2024, 1, 3), status="COMPLETED", price=120000, court_id=court_a),
        _booking(date(2024, 2, 3), "18:00", "20:00", status="ACTIVE", price=80000, court_id=court_b),
        _booking(date(2024, 2, 4), status="CANCELLED", price=999999, court_id=court_a),
    ]

    summary = summarize_venue_commission(
        bookings,
        court_ids=[str(court_a), str(court_b), str(idle_court)],
        rate_per_hour=5000,
    )

    assert summary.total_bookings == 2
    assert summary.total_revenue == 200000
    assert summary.platform_commission == 15000
    assert summary.revenue_by_court == {str(court_a): 120000, str(court_b): 80000, str(idle_court): 0}
    assert summary.to_dict()["platformCommission"] == 15000


def test_booking_status_is_normalized_on_validation() -> None:
    booking = _booking(date(2024, 3, 2), status=" completed ")

    assert booking.status == BookingStatus.COMPLETED
