"""Enumerations shared by the billing models, services and routers."""

from __future__ import annotations

from enum import Enum


class PlanType(str, Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"
    ENTERPRISE = "ENTERPRISE"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    PENDING_PAYMENT = "PENDING_PAYMENT"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class BookingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class PaymentType(str, Enum):
    SUBSCRIPTION = "SUBSCRIPTION"
    COMMISSION = "COMMISSION"
    REACTIVATION = "REACTIVATION"


class PaymentMethod(str, Enum):
    TRANSFER = "TRANSFER"
    CASH = "CASH"
    CARD = "CARD"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


DEFAULT_MAX_VENUES = 1
DEFAULT_MAX_COURTS_PER_VENUE = 5

__all__ = [
    "BookingStatus",
    "DEFAULT_MAX_COURTS_PER_VENUE",
    "DEFAULT_MAX_VENUES",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentType",
    "PlanType",
    "SubscriptionStatus",
]
