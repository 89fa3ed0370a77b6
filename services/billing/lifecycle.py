"""Trial and subscription lifecycle resolution.

``resolve_subscription_state`` is pure: it maps a subscription snapshot and
the current time to a :class:`SubscriptionState`. When a free trial has
lapsed it returns an :class:`AutoUpgradeRequest` instead of writing anything;
persisting that request is the caller's job (see ``billing_service``).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from core.billing_constants import PlanType, SubscriptionStatus
from schemas.billing import SubscriptionRecord
from services.billing.config import get_billing_settings
from services.billing.cycle import DateLike, to_local_date, to_local_datetime

_SECONDS_PER_DAY = 86400


class SubscriptionState(str, Enum):
    NO_SUBSCRIPTION = "NO_SUBSCRIPTION"
    IN_TRIAL = "IN_TRIAL"
    ACTIVE_PAID = "ACTIVE_PAID"
    EXPIRED_BLOCKED = "EXPIRED_BLOCKED"
    CANCELLED_PENDING_REACTIVATION = "CANCELLED_PENDING_REACTIVATION"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


@dataclass(frozen=True, slots=True)
class AutoUpgradeRequest:
    subscription_id: uuid.UUID
    owner_id: uuid.UUID
    trial_ended_at: datetime


@dataclass(frozen=True, slots=True)
class SubscriptionResolution:
    state: SubscriptionState
    trial_days_left: int = 0
    trial_ends_at: Optional[datetime] = None
    auto_upgrade: Optional[AutoUpgradeRequest] = None

    @property
    def in_trial(self) -> bool:
        return self.state == SubscriptionState.IN_TRIAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "trialDaysLeft": self.trial_days_left,
            "trialEndsAt": self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            "autoUpgradeRequested": self.auto_upgrade is not None,
        }


def trial_end_from(anchor: DateLike, *, trial_days: Optional[int] = None) -> datetime:
    """Local instant at which a trial anchored on ``anchor`` ends."""
    days = get_billing_settings().trial_days if trial_days is None else trial_days
    return to_local_datetime(anchor) + timedelta(days=days)


def trial_days_remaining(trial_end: datetime, now: DateLike) -> int:
    remaining = (trial_end - to_local_datetime(now)).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining / _SECONDS_PER_DAY)


def _is_expired(subscription: SubscriptionRecord, now: DateLike) -> bool:
    if subscription.status == SubscriptionStatus.EXPIRED:
        return True
    if subscription.plan_type == PlanType.FREE or subscription.end_date is None:
        return False
    return subscription.end_date < to_local_date(now)


def resolve_subscription_state(
    subscription: Optional[SubscriptionRecord],
    now: DateLike,
    *,
    trial_days: Optional[int] = None,
) -> SubscriptionResolution:
    """Decide which lifecycle state applies; the first matching rule wins."""

    if subscription is None:
        return SubscriptionResolution(state=SubscriptionState.NO_SUBSCRIPTION)

    if subscription.status == SubscriptionStatus.CANCELLED:
        return SubscriptionResolution(state=SubscriptionState.CANCELLED_PENDING_REACTIVATION)

    if _is_expired(subscription, now):
        return SubscriptionResolution(state=SubscriptionState.EXPIRED_BLOCKED)

    if subscription.plan_type == PlanType.FREE:
        # Display path anchors the trial on start_date; the debt path uses created_at.
        trial_end = trial_end_from(subscription.start_date, trial_days=trial_days)
        if to_local_datetime(now) < trial_end:
            return SubscriptionResolution(
                state=SubscriptionState.IN_TRIAL,
                trial_days_left=trial_days_remaining(trial_end, now),
                trial_ends_at=trial_end,
            )
        return SubscriptionResolution(
            state=SubscriptionState.ACTIVE_PAID,
            trial_ends_at=trial_end,
            auto_upgrade=AutoUpgradeRequest(
                subscription_id=subscription.id,
                owner_id=subscription.owner_id,
                trial_ended_at=trial_end,
            ),
        )

    return SubscriptionResolution(state=SubscriptionState.ACTIVE_PAID)


def apply_upgrade_locally(subscription: SubscriptionRecord) -> SubscriptionRecord:
    """Snapshot as it looks after a successful auto-upgrade."""
    return subscription.model_copy(
        update={"plan_type": PlanType.PREMIUM, "status": SubscriptionStatus.ACTIVE}
    )


__all__ = [
    "AutoUpgradeRequest",
    "SubscriptionResolution",
    "SubscriptionState",
    "apply_upgrade_locally",
    "resolve_subscription_state",
    "trial_days_remaining",
    "trial_end_from",
]
