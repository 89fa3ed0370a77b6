"""Owner billing orchestration: lifecycle resolution, auto-upgrade and account transitions."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from core.billing_constants import (
    DEFAULT_MAX_COURTS_PER_VENUE,
    DEFAULT_MAX_VENUES,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    PlanType,
    SubscriptionStatus,
)
from core.logging import get_logger
from schemas.billing import BookingRecord, PaymentRecord, SubscriptionRecord
from services.billing import billing_metrics
from services.billing.bookings import apply_derived_statuses
from services.billing.commission import (
    Rate,
    VenueCommissionSummary,
    compute_commission,
    filter_cycle_bookings,
    summarize_venue_commission,
)
from services.billing.config import get_billing_settings
from services.billing.cycle import BillingCycle, DateLike, compute_billing_cycle, to_local_date
from services.billing.data_service import BillingDataService, VenueSnapshot
from services.billing.debt import ReactivationDebt, quote_reactivation_debt
from services.billing.errors import (
    BillingConflictError,
    BillingMutationError,
    BillingNotFoundError,
)
from services.billing.lifecycle import (
    AutoUpgradeRequest,
    SubscriptionState,
    apply_upgrade_locally,
    resolve_subscription_state,
)

logger = get_logger(__name__)


@dataclass(slots=True)
class BillingOverview:
    """Everything the owner billing screen needs for one resolution pass."""

    owner_id: uuid.UUID
    state: SubscriptionState
    subscription: Optional[SubscriptionRecord]
    cycle: BillingCycle
    total_bookings: int
    total_commission: int
    trial_days_left: int
    currency: str
    trial_ends_at: Optional[datetime] = None
    auto_upgraded: bool = False
    reactivation_debt: Optional[ReactivationDebt] = None

    @property
    def requires_terms(self) -> bool:
        return self.state == SubscriptionState.NO_SUBSCRIPTION

    def to_dict(self) -> Dict[str, Any]:
        subscription = self.subscription
        payload: Dict[str, Any] = {
            "ownerId": str(self.owner_id),
            "state": self.state.value,
            "subscriptionId": str(subscription.id) if subscription else None,
            "subscriptionPlan": subscription.plan_type.value if subscription else None,
            "subscriptionStatus": subscription.status.value if subscription else None,
            "totalBookings": self.total_bookings,
            "totalCommission": self.total_commission,
            "currency": self.currency,
            "trialDaysLeft": self.trial_days_left,
            "trialEndsAt": self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            "autoUpgraded": self.auto_upgraded,
            "requiresTerms": self.requires_terms,
            "reactivationDebt": self.reactivation_debt.to_dict() if self.reactivation_debt else None,
        }
        payload.update(self.cycle.to_dict())
        return payload


@dataclass(slots=True)
class ReactivationResult:
    subscription: SubscriptionRecord
    debt: ReactivationDebt


@dataclass(slots=True)
class AdminVenueOverview:
    venue: VenueSnapshot
    subscription: Optional[SubscriptionRecord]
    summary: VenueCommissionSummary


def _now(now: Optional[DateLike]) -> DateLike:
    return now if now is not None else datetime.now(timezone.utc)


def apply_auto_upgrade(data_service: BillingDataService, request: AutoUpgradeRequest) -> bool:
    """Persist a trial upgrade. Returns ``True`` only when a row actually changed.

    A failed write is logged with its traceback and counted; the caller keeps
    treating the account as upgraded for this pass.
    """
    try:
        changed = data_service.upgrade_trial_subscription(request.subscription_id)
    except BillingMutationError:
        logger.exception(
            "Auto-upgrade persistence failed for subscription=%s owner=%s",
            request.subscription_id,
            request.owner_id,
        )
        billing_metrics.record_auto_upgrade("failed")
        return False
    if changed:
        logger.info(
            "Trial ended; subscription upgraded to PREMIUM.",
            extra={
                "subscription_id": str(request.subscription_id),
                "owner_id": str(request.owner_id),
                "trial_ended_at": request.trial_ended_at.isoformat(),
            },
        )
        billing_metrics.record_auto_upgrade("upgraded")
    else:
        billing_metrics.record_auto_upgrade("noop")
    return changed


def _close_finished_bookings(data_service: BillingDataService, booking_ids: List[uuid.UUID]) -> None:
    if not booking_ids:
        return
    try:
        closed = data_service.mark_bookings_completed(booking_ids)
    except BillingMutationError as exc:
        logger.warning("Could not persist auto-close for %d booking(s): %s", len(booking_ids), exc.message)
        return
    logger.debug("Auto-closed %d finished booking(s).", closed)


def _cycle_anchor(
    data_service: BillingDataService,
    owner_id: uuid.UUID,
    subscription: Optional[SubscriptionRecord],
    now: DateLike,
) -> date:
    if subscription is not None:
        return subscription.start_date
    first_venue = data_service.get_first_venue_created_at(owner_id)
    if first_venue is not None:
        return to_local_date(first_venue)
    return to_local_date(now).replace(day=1)


def _load_bookings(data_service: BillingDataService, owner_id: uuid.UUID, now: DateLike) -> List[BookingRecord]:
    bookings, closed = apply_derived_statuses(data_service.list_owner_bookings(owner_id), now)
    _close_finished_bookings(data_service, closed)
    return bookings


def resolve_owner_billing(
    data_service: BillingDataService,
    owner_id: uuid.UUID,
    now: Optional[DateLike] = None,
    *,
    rate_per_hour: Optional[Rate] = None,
) -> BillingOverview:
    """Resolve lifecycle state and current-cycle figures for one owner.

    Read failures propagate as ``BillingDataError``; a failed lookup is never
    reported as ``NO_SUBSCRIPTION``.
    """
    now = _now(now)
    subscription = data_service.get_latest_subscription(owner_id)
    resolution = resolve_subscription_state(subscription, now)

    auto_upgraded = False
    if resolution.auto_upgrade is not None and subscription is not None:
        auto_upgraded = apply_auto_upgrade(data_service, resolution.auto_upgrade)
        subscription = apply_upgrade_locally(subscription)

    cycle = compute_billing_cycle(_cycle_anchor(data_service, owner_id, subscription, now), now)
    bookings = _load_bookings(data_service, owner_id, now)
    cycle_bookings = filter_cycle_bookings(bookings, cycle.start, cycle.end)

    if resolution.in_trial:
        commission = 0
    else:
        commission = compute_commission(cycle_bookings, cycle.start, cycle.end, rate_per_hour=rate_per_hour)

    debt: Optional[ReactivationDebt] = None
    if resolution.state == SubscriptionState.CANCELLED_PENDING_REACTIVATION and subscription is not None:
        debt = quote_reactivation_debt(subscription, bookings, now, rate_per_hour=rate_per_hour)

    billing_metrics.record_resolution(resolution.state.value)
    logger.debug(
        "Resolved billing for owner=%s state=%s commission=%d",
        owner_id,
        resolution.state.value,
        commission,
    )
    return BillingOverview(
        owner_id=owner_id,
        state=resolution.state,
        subscription=subscription,
        cycle=cycle,
        total_bookings=len(cycle_bookings),
        total_commission=commission,
        trial_days_left=resolution.trial_days_left,
        trial_ends_at=resolution.trial_ends_at,
        currency=get_billing_settings().currency,
        auto_upgraded=auto_upgraded,
        reactivation_debt=debt,
    )


def accept_terms(
    data_service: BillingDataService,
    owner_id: uuid.UUID,
    now: Optional[DateLike] = None,
) -> SubscriptionRecord:
    """Start the free trial for an owner who accepted the terms.

    An existing live subscription is returned untouched; a cancelled one has
    to go through reactivation instead.
    """
    existing = data_service.get_latest_subscription(owner_id)
    if existing is not None:
        if existing.is_cancelled:
            raise BillingConflictError(
                code="billing.reactivation_required",
                message="This account was cancelled and must be reactivated.",
                owner_id=str(owner_id),
            )
        return existing

    record = data_service.insert_subscription(
        owner_id=owner_id,
        plan_type=PlanType.FREE,
        status=SubscriptionStatus.ACTIVE,
        start_date=to_local_date(_now(now)),
        price_per_month=0,
        max_venues=DEFAULT_MAX_VENUES,
        max_courts_per_venue=DEFAULT_MAX_COURTS_PER_VENUE,
    )
    logger.info("Trial subscription created for owner=%s start=%s", owner_id, record.start_date)
    return record


def _require_subscription(data_service: BillingDataService, owner_id: uuid.UUID) -> SubscriptionRecord:
    subscription = data_service.get_latest_subscription(owner_id)
    if subscription is None:
        raise BillingNotFoundError(
            code="billing.subscription_not_found",
            message="No subscription exists for this account.",
            owner_id=str(owner_id),
        )
    return subscription


def cancel_subscription(data_service: BillingDataService, owner_id: uuid.UUID) -> SubscriptionRecord:
    subscription = _require_subscription(data_service, owner_id)
    if subscription.is_cancelled:
        return subscription
    updated = data_service.update_subscription(subscription.id, status=SubscriptionStatus.CANCELLED)
    logger.info("Subscription %s cancelled by owner=%s", subscription.id, owner_id)
    return updated


def reactivate_subscription(
    data_service: BillingDataService,
    owner_id: uuid.UUID,
    now: Optional[DateLike] = None,
    *,
    rate_per_hour: Optional[Rate] = None,
) -> ReactivationResult:
    """Bring a cancelled account back on the paid plan with a fresh cycle anchor.

    The debt is quoted against the cancelled snapshot before the write, since
    the new ``start_date`` moves the cycle.
    """
    now = _now(now)
    subscription = _require_subscription(data_service, owner_id)
    if not subscription.is_cancelled:
        raise BillingConflictError(
            code="billing.not_cancelled",
            message="Only cancelled subscriptions can be reactivated.",
            owner_id=str(owner_id),
        )

    debt = quote_reactivation_debt(
        subscription,
        _load_bookings(data_service, owner_id, now),
        now,
        rate_per_hour=rate_per_hour,
    )
    updated = data_service.update_subscription(
        subscription.id,
        status=SubscriptionStatus.ACTIVE,
        plan_type=PlanType.PREMIUM,
        start_date=to_local_date(now),
        end_date=None,
    )
    logger.info(
        "Subscription %s reactivated for owner=%s (outstanding debt=%d)",
        subscription.id,
        owner_id,
        debt.amount,
    )
    return ReactivationResult(subscription=updated, debt=debt)


def update_subscription_fields(
    data_service: BillingDataService,
    subscription_id: uuid.UUID,
    **fields: Any,
) -> SubscriptionRecord:
    """Admin partial edit of plan, status, dates or price."""
    changes = dict(fields)
    if not changes:
        raise ValueError("At least one subscription field must be provided.")
    updated = data_service.update_subscription(subscription_id, **changes)
    logger.info("Subscription %s updated by admin: %s", subscription_id, ", ".join(sorted(changes)))
    return updated


def record_manual_payment(
    data_service: BillingDataService,
    *,
    subscription_id: uuid.UUID,
    amount: int,
    payment_method: PaymentMethod,
    payment_type: PaymentType = PaymentType.SUBSCRIPTION,
    status: PaymentStatus = PaymentStatus.COMPLETED,
    currency: Optional[str] = None,
    note: Optional[str] = None,
) -> PaymentRecord:
    if amount < 0:
        raise ValueError("amount must be zero or positive")
    subscription = data_service.get_subscription(subscription_id)
    if subscription is None:
        raise BillingNotFoundError(
            code="billing.subscription_not_found",
            message=f"Subscription {subscription_id} does not exist.",
        )
    payment = data_service.insert_payment(
        payment_type=payment_type,
        subscription_id=subscription.id,
        payer_id=subscription.owner_id,
        amount=amount,
        currency=(currency or get_billing_settings().currency).upper(),
        payment_method=payment_method,
        status=status,
        note=note,
    )
    logger.info(
        "Payment %s recorded for subscription=%s amount=%d %s",
        payment.id,
        subscription.id,
        payment.amount,
        payment.currency,
    )
    return payment


def _pick_owner_subscription(
    subscriptions: List[SubscriptionRecord],
    owner_id: uuid.UUID,
) -> Optional[SubscriptionRecord]:
    owned = [item for item in subscriptions if item.owner_id == owner_id]
    for item in owned:
        if item.status == SubscriptionStatus.ACTIVE:
            return item
    return owned[0] if owned else None


def build_admin_venue_overview(
    data_service: BillingDataService,
    *,
    rate_per_hour: Optional[Rate] = None,
) -> List[AdminVenueOverview]:
    """Per-venue revenue and lifetime platform commission for the admin dashboard."""
    venues = data_service.list_venues()
    subscriptions = data_service.list_subscriptions()
    bookings_by_venue: Dict[uuid.UUID, List[BookingRecord]] = {}
    for booking in data_service.list_billable_bookings():
        if booking.venue_id is not None:
            bookings_by_venue.setdefault(booking.venue_id, []).append(booking)

    return [
        AdminVenueOverview(
            venue=venue,
            subscription=_pick_owner_subscription(subscriptions, venue.owner_id),
            summary=summarize_venue_commission(
                bookings_by_venue.get(venue.id, []),
                court_ids=venue.court_ids,
                rate_per_hour=rate_per_hour,
            ),
        )
        for venue in venues
    ]


__all__ = [
    "AdminVenueOverview",
    "BillingOverview",
    "ReactivationResult",
    "accept_terms",
    "apply_auto_upgrade",
    "build_admin_venue_overview",
    "cancel_subscription",
    "reactivate_subscription",
    "record_manual_payment",
    "resolve_owner_billing",
    "update_subscription_fields",
]
