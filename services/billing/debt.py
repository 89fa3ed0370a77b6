"""Unpaid commission owed when a cancelled account comes back."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional

from schemas.billing import BookingRecord, SubscriptionRecord
from services.billing.commission import Rate, compute_commission, filter_cycle_bookings
from services.billing.cycle import BillingCycle, DateLike, compute_billing_cycle
from services.billing.lifecycle import trial_end_from


@dataclass(frozen=True, slots=True)
class ReactivationDebt:
    amount: int
    cycle: BillingCycle
    trial_cutoff: date
    completed_bookings: int

    @property
    def has_debt(self) -> bool:
        return self.amount > 0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "amount": self.amount,
            "trialCutoff": self.trial_cutoff.isoformat(),
            "completedBookings": self.completed_bookings,
        }
        payload.update(self.cycle.to_dict())
        return payload


def quote_reactivation_debt(
    subscription: SubscriptionRecord,
    bookings: Iterable[BookingRecord],
    now: DateLike,
    *,
    rate_per_hour: Optional[Rate] = None,
    trial_days: Optional[int] = None,
) -> ReactivationDebt:
    """Commission for the cycle containing ``now`` with the trial carved out.

    The carve-out is anchored on ``created_at`` (not ``start_date``) so a
    reactivated account whose start date was moved still keeps its original
    trial boundary.
    """
    cycle = compute_billing_cycle(subscription.start_date, now)
    in_cycle = filter_cycle_bookings(bookings, cycle.start, cycle.end)
    trial_cutoff = trial_end_from(subscription.created_at, trial_days=trial_days).date()
    amount = compute_commission(
        in_cycle,
        cycle.start,
        cycle.end,
        trial_cutoff=trial_cutoff,
        rate_per_hour=rate_per_hour,
    )
    return ReactivationDebt(
        amount=amount,
        cycle=cycle,
        trial_cutoff=trial_cutoff,
        completed_bookings=len(in_cycle),
    )


def compute_reactivation_debt(
    subscription: SubscriptionRecord,
    bookings: Iterable[BookingRecord],
    now: DateLike,
    *,
    rate_per_hour: Optional[Rate] = None,
    trial_days: Optional[int] = None,
) -> int:
    return quote_reactivation_debt(
        subscription,
        bookings,
        now,
        rate_per_hour=rate_per_hour,
        trial_days=trial_days,
    ).amount


__all__ = ["ReactivationDebt", "compute_reactivation_debt", "quote_reactivation_debt"]
