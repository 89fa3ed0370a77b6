from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from schemas.billing import BookingRecord, SubscriptionRecord
from services.billing.debt import compute_reactivation_debt, quote_reactivation_debt


def _cancelled_subscription(
    *,
    start_date: date = date(2024, 1, 1),
    created_at: datetime = datetime(2024, 1, 1, 0, 0),
) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=uuid.uuid4(),
        owner_id=uuid.uuid4(),
        plan_type="PREMIUM",
        status="CANCELLED",
        start_date=start_date,
        created_at=created_at,
    )


def _booking(day: date, start: str = "18:00", end: Optional[str] = "19:00", status: str = "COMPLETED") -> BookingRecord:
    return BookingRecord(id=uuid.uuid4(), date=day, start_time=start, end_time=end, price=0, status=status)


def test_two_hour_booking_after_trial_is_owed() -> None:
    subscription = _cancelled_subscription()
    bookings = [_booking(date(2024, 3, 1), "18:00", "20:00")]

    debt = quote_reactivation_debt(subscription, bookings, datetime(2024, 3, 10), rate_per_hour=5000)

    assert debt.amount == 10000
    assert debt.has_debt
    assert debt.cycle.start == date(2024, 3, 1)
    assert debt.cycle.end == date(2024, 4, 1)
    assert debt.trial_cutoff == date(2024, 1, 31)
    assert debt.completed_bookings == 1


def test_debt_uses_default_rate() -> None:
    subscription = _cancelled_subscription()
    bookings = [_booking(date(2024, 3, 1), "18:00", "20:00")]

    assert compute_reactivation_debt(subscription, bookings, datetime(2024, 3, 10)) == 10000


def test_bookings_outside_current_cycle_are_ignored() -> None:
    subscription = _cancelled_subscription()
    bookings = [
        _booking(date(2024, 2, 28)),
        _booking(date(2024, 3, 2)),
        _booking(date(2024, 3, 3), status="ACTIVE"),
        _booking(date(2024, 3, 4), status="CANCELLED"),
    ]

    debt = quote_reactivation_debt(subscription, bookings, datetime(2024, 3, 10), rate_per_hour=5000)

    assert debt.amount == 5000
    assert debt.completed_bookings == 1


def test_trial_carve_out_anchors_on_creation_not_start_date() -> None:
    # start_date was moved forward to Feb 10; created_at keeps the original trial end (Jan 31).
    subscription = _cancelled_subscription(start_date=date(2024, 2, 10), created_at=datetime(2024, 1, 1, 0, 0))
    bookings = [_booking(date(2024, 2, 12)), _booking(date(2024, 2, 20))]

    debt = quote_reactivation_debt(subscription, bookings, datetime(2024, 2, 25), rate_per_hour=5000)

    assert debt.cycle.start == date(2024, 2, 10)
    assert debt.trial_cutoff == date(2024, 1, 31)
    assert debt.amount == 10000


def test_bookings_still_in_trial_owe_nothing() -> None:
    subscription = _cancelled_subscription(start_date=date(2024, 1, 1), created_at=datetime(2024, 1, 10, 0, 0))
    bookings = [_booking(date(2024, 1, 20)), _booking(date(2024, 1, 25))]

    debt = quote_reactivation_debt(subscription, bookings, datetime(2024, 1, 28), rate_per_hour=5000)

    assert debt.amount == 0
    assert not debt.has_debt
    assert debt.completed_bookings == 2
    assert debt.to_dict() == {
        "amount": 0,
        "trialCutoff": "2024-02-09",
        "completedBookings": 2,
        "cycleStart": "2024-01-01",
        "cycleEnd": "2024-02-01",
    }
