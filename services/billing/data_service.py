"""Relational data service backing the billing core.

Every row leaving this module is validated into a ``schemas.billing`` record.
Reads raise :class:`BillingDataError` so callers can tell "the store is
unreachable" apart from "the owner has no subscription".
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.billing_constants import (
    DEFAULT_MAX_COURTS_PER_VENUE,
    DEFAULT_MAX_VENUES,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    PlanType,
    SubscriptionStatus,
)
from core.logging import get_logger
from models.booking import Booking
from models.payment import Payment
from models.subscription import Subscription
from models.venue import Court, Venue
from schemas.billing import BookingRecord, PaymentRecord, SubscriptionRecord
from services.billing.errors import BillingDataError, BillingMutationError, BillingNotFoundError

logger = get_logger(__name__)

_UPDATABLE_SUBSCRIPTION_FIELDS = frozenset(
    {"plan_type", "status", "start_date", "end_date", "price_per_month"}
)


@dataclass(slots=True)
class VenueSnapshot:
    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    created_at: Optional[datetime]
    court_ids: List[str] = field(default_factory=list)


class BillingDataService(Protocol):
    """Operations the billing core needs from the persistent store."""

    def get_latest_subscription(self, owner_id: uuid.UUID) -> Optional[SubscriptionRecord]: ...

    def get_subscription(self, subscription_id: uuid.UUID) -> Optional[SubscriptionRecord]: ...

    def list_owner_bookings(
        self,
        owner_id: uuid.UUID,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[BookingRecord]: ...

    def get_first_venue_created_at(self, owner_id: uuid.UUID) -> Optional[datetime]: ...

    def insert_subscription(
        self,
        *,
        owner_id: uuid.UUID,
        plan_type: PlanType,
        status: SubscriptionStatus,
        start_date: date,
        price_per_month: int = 0,
        max_venues: int = DEFAULT_MAX_VENUES,
        max_courts_per_venue: int = DEFAULT_MAX_COURTS_PER_VENUE,
    ) -> SubscriptionRecord: ...

    def update_subscription(self, subscription_id: uuid.UUID, **fields: Any) -> SubscriptionRecord: ...

    def upgrade_trial_subscription(self, subscription_id: uuid.UUID) -> bool: ...

    def mark_bookings_completed(self, booking_ids: Sequence[uuid.UUID]) -> int: ...

    def insert_payment(
        self,
        *,
        payment_type: PaymentType,
        subscription_id: Optional[uuid.UUID],
        payer_id: Optional[uuid.UUID],
        amount: int,
        currency: str,
        payment_method: PaymentMethod,
        status: PaymentStatus,
        note: Optional[str] = None,
        paid_at: Optional[datetime] = None,
    ) -> PaymentRecord: ...

    def list_subscriptions(self) -> List[SubscriptionRecord]: ...

    def list_payments(self, *, limit: int = 200) -> List[PaymentRecord]: ...

    def list_venues(self) -> List[VenueSnapshot]: ...

    def list_billable_bookings(self) -> List[BookingRecord]: ...


def _hydrate_bookings(rows: Iterable[Booking]) -> List[BookingRecord]:
    records: List[BookingRecord] = []
    for row in rows:
        try:
            records.append(BookingRecord.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed booking %s: %s", getattr(row, "id", None), exc)
    return records


class SqlBillingDataService:
    """:class:`BillingDataService` over a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ----------------------------------------------------------------- reads

    def _subscription_record(self, row: Optional[Subscription]) -> Optional[SubscriptionRecord]:
        if row is None:
            return None
        return self._validate_subscription(row)

    def _validate_subscription(self, row: Subscription) -> SubscriptionRecord:
        try:
            return SubscriptionRecord.model_validate(row)
        except ValidationError as exc:
            raise BillingDataError(
                code="billing.invalid_subscription",
                message=f"Subscription {row.id} failed validation: {exc.error_count()} error(s).",
                owner_id=str(row.owner_id),
            ) from exc

    def get_latest_subscription(self, owner_id: uuid.UUID) -> Optional[SubscriptionRecord]:
        stmt = (
            select(Subscription)
            .where(Subscription.owner_id == owner_id)
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        try:
            row = self._session.execute(stmt).scalars().first()
        except SQLAlchemyError as exc:
            logger.warning("Subscription lookup failed for owner=%s: %s", owner_id, exc)
            raise BillingDataError(
                code="billing.read_failed",
                message="Could not load the subscription.",
                owner_id=str(owner_id),
            ) from exc
        return self._subscription_record(row)

    def get_subscription(self, subscription_id: uuid.UUID) -> Optional[SubscriptionRecord]:
        try:
            row = self._session.get(Subscription, subscription_id)
        except SQLAlchemyError as exc:
            raise BillingDataError(code="billing.read_failed", message="Could not load the subscription.") from exc
        return self._subscription_record(row)

    def list_owner_bookings(
        self,
        owner_id: uuid.UUID,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[BookingRecord]:
        stmt = select(Booking).join(Venue, Venue.id == Booking.venue_id).where(Venue.owner_id == owner_id)
        if start is not None:
            stmt = stmt.where(Booking.date >= start)
        if end is not None:
            stmt = stmt.where(Booking.date < end)
        stmt = stmt.order_by(Booking.date.asc(), Booking.start_time.asc())
        try:
            rows = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            logger.warning("Booking lookup failed for owner=%s: %s", owner_id, exc)
            raise BillingDataError(
                code="billing.read_failed",
                message="Could not load bookings.",
                owner_id=str(owner_id),
            ) from exc
        return _hydrate_bookings(rows)

    def get_first_venue_created_at(self, owner_id: uuid.UUID) -> Optional[datetime]:
        stmt = (
            select(Venue.created_at)
            .where(Venue.owner_id == owner_id)
            .order_by(Venue.created_at.asc())
            .limit(1)
        )
        try:
            return self._session.execute(stmt).scalars().first()
        except SQLAlchemyError as exc:
            raise BillingDataError(
                code="billing.read_failed",
                message="Could not load venues.",
                owner_id=str(owner_id),
            ) from exc

    def list_subscriptions(self) -> List[SubscriptionRecord]:
        stmt = select(Subscription).order_by(Subscription.created_at.desc())
        try:
            rows = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise BillingDataError(code="billing.read_failed", message="Could not load subscriptions.") from exc
        records: List[SubscriptionRecord] = []
        for row in rows:
            try:
                records.append(SubscriptionRecord.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed subscription %s: %s", row.id, exc)
        return records

    def list_payments(self, *, limit: int = 200) -> List[PaymentRecord]:
        stmt = select(Payment).order_by(Payment.created_at.desc()).limit(max(limit, 1))
        try:
            rows = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise BillingDataError(code="billing.read_failed", message="Could not load payments.") from exc
        records: List[PaymentRecord] = []
        for row in rows:
            try:
                records.append(PaymentRecord.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed payment %s: %s", row.id, exc)
        return records

    def list_venues(self) -> List[VenueSnapshot]:
        try:
            venues = self._session.execute(select(Venue).order_by(Venue.created_at.desc())).scalars().all()
            courts = self._session.execute(select(Court.id, Court.venue_id)).all()
        except SQLAlchemyError as exc:
            raise BillingDataError(code="billing.read_failed", message="Could not load venues.") from exc
        courts_by_venue: Dict[uuid.UUID, List[str]] = {}
        for court_id, venue_id in courts:
            courts_by_venue.setdefault(venue_id, []).append(str(court_id))
        return [
            VenueSnapshot(
                id=venue.id,
                owner_id=venue.owner_id,
                name=venue.name,
                created_at=venue.created_at,
                court_ids=courts_by_venue.get(venue.id, []),
            )
            for venue in venues
        ]

    def list_billable_bookings(self) -> List[BookingRecord]:
        stmt = select(Booking).where(Booking.status != BookingStatus.CANCELLED.value)
        try:
            rows = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise BillingDataError(code="billing.read_failed", message="Could not load bookings.") from exc
        return _hydrate_bookings(rows)

    # ---------------------------------------------------------------- writes

    def _commit(self, *, code: str, message: str, owner_id: Optional[uuid.UUID] = None) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.warning("%s (owner=%s): %s", message, owner_id, exc)
            raise BillingMutationError(
                code=code,
                message=message,
                owner_id=str(owner_id) if owner_id else None,
            ) from exc

    def insert_subscription(
        self,
        *,
        owner_id: uuid.UUID,
        plan_type: PlanType,
        status: SubscriptionStatus,
        start_date: date,
        price_per_month: int = 0,
        max_venues: int = DEFAULT_MAX_VENUES,
        max_courts_per_venue: int = DEFAULT_MAX_COURTS_PER_VENUE,
    ) -> SubscriptionRecord:
        row = Subscription(
            id=uuid.uuid4(),
            owner_id=owner_id,
            plan_type=PlanType(plan_type).value,
            status=SubscriptionStatus(status).value,
            start_date=start_date,
            price_per_month=price_per_month,
            max_venues=max_venues,
            max_courts_per_venue=max_courts_per_venue,
            created_at=datetime.now(timezone.utc),
        )
        self._session.add(row)
        self._commit(code="billing.subscription_create_failed", message="Could not create the subscription.", owner_id=owner_id)
        self._session.refresh(row)
        return self._validate_subscription(row)

    def update_subscription(self, subscription_id: uuid.UUID, **fields: Any) -> SubscriptionRecord:
        unknown = set(fields) - _UPDATABLE_SUBSCRIPTION_FIELDS
        if unknown:
            raise ValueError(f"Unsupported subscription fields: {', '.join(sorted(unknown))}")
        try:
            row = self._session.get(Subscription, subscription_id)
        except SQLAlchemyError as exc:
            raise BillingMutationError(
                code="billing.subscription_update_failed",
                message="Could not update the subscription.",
            ) from exc
        if row is None:
            raise BillingNotFoundError(
                code="billing.subscription_not_found",
                message=f"Subscription {subscription_id} does not exist.",
            )
        for name, value in _normalize_subscription_fields(fields).items():
            setattr(row, name, value)
        self._commit(
            code="billing.subscription_update_failed",
            message="Could not update the subscription.",
            owner_id=row.owner_id,
        )
        self._session.refresh(row)
        return self._validate_subscription(row)

    def upgrade_trial_subscription(self, subscription_id: uuid.UUID) -> bool:
        """Flip FREE to PREMIUM/ACTIVE; a row that is already upgraded or cancelled is left alone."""
        stmt = (
            update(Subscription)
            .where(
                Subscription.id == subscription_id,
                Subscription.plan_type == PlanType.FREE.value,
                Subscription.status != SubscriptionStatus.CANCELLED.value,
            )
            .values(plan_type=PlanType.PREMIUM.value, status=SubscriptionStatus.ACTIVE.value)
        )
        try:
            result = self._session.execute(stmt)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise BillingMutationError(
                code="billing.auto_upgrade_failed",
                message="Could not persist the trial upgrade.",
            ) from exc
        self._commit(code="billing.auto_upgrade_failed", message="Could not persist the trial upgrade.")
        return max(result.rowcount or 0, 0) > 0

    def mark_bookings_completed(self, booking_ids: Sequence[uuid.UUID]) -> int:
        if not booking_ids:
            return 0
        stmt = (
            update(Booking)
            .where(Booking.id.in_(list(booking_ids)), Booking.status == BookingStatus.ACTIVE.value)
            .values(status=BookingStatus.COMPLETED.value)
        )
        try:
            result = self._session.execute(stmt)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise BillingMutationError(code="billing.booking_close_failed", message="Could not close bookings.") from exc
        self._commit(code="billing.booking_close_failed", message="Could not close bookings.")
        return max(result.rowcount or 0, 0)

    def insert_payment(
        self,
        *,
        payment_type: PaymentType,
        subscription_id: Optional[uuid.UUID],
        payer_id: Optional[uuid.UUID],
        amount: int,
        currency: str,
        payment_method: PaymentMethod,
        status: PaymentStatus,
        note: Optional[str] = None,
        paid_at: Optional[datetime] = None,
    ) -> PaymentRecord:
        now = datetime.now(timezone.utc)
        row = Payment(
            id=uuid.uuid4(),
            payment_type=PaymentType(payment_type).value,
            subscription_id=subscription_id,
            payer_id=payer_id,
            amount=int(amount),
            currency=currency,
            payment_method=PaymentMethod(payment_method).value,
            status=PaymentStatus(status).value,
            note=note,
            paid_at=paid_at or (now if PaymentStatus(status) == PaymentStatus.COMPLETED else None),
            created_at=now,
        )
        self._session.add(row)
        self._commit(code="billing.payment_create_failed", message="Could not record the payment.", owner_id=payer_id)
        self._session.refresh(row)
        return PaymentRecord.model_validate(row)


def _normalize_subscription_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for name, value in fields.items():
        if name == "plan_type" and value is not None:
            value = PlanType(value).value
        elif name == "status" and value is not None:
            value = SubscriptionStatus(value).value
        normalized[name] = value
    return normalized


__all__ = ["BillingDataService", "SqlBillingDataService", "VenueSnapshot"]
