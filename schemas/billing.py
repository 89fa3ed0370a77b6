"""Validated billing records exchanged with the data service."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.billing_constants import (
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    PlanType,
    SubscriptionStatus,
)

CalendarDate = date


def _upper(value: object) -> object:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class SubscriptionRecord(BaseModel):
    """Snapshot of a subscription row."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    plan_type: PlanType
    status: SubscriptionStatus
    start_date: date
    end_date: Optional[date] = None
    created_at: datetime
    price_per_month: int = Field(default=0, ge=0)
    max_venues: int = Field(default=1, ge=0)
    max_courts_per_venue: int = Field(default=5, ge=0)

    @field_validator("plan_type", "status", mode="before")
    @classmethod
    def normalize_enums(cls, value: object) -> object:
        return _upper(value)

    @property
    def is_cancelled(self) -> bool:
        return self.status == SubscriptionStatus.CANCELLED


class BookingRecord(BaseModel):
    """Booking fields consumed by commission and cycle logic."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    venue_id: Optional[uuid.UUID] = None
    court_id: Optional[uuid.UUID] = None
    date: CalendarDate
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    price: int = 0
    status: BookingStatus = BookingStatus.ACTIVE

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: object) -> object:
        return _upper(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def blank_time_to_none(cls, value: object) -> object:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, value: object) -> object:
        return 0 if value is None else value


class PaymentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    payment_type: PaymentType
    subscription_id: Optional[uuid.UUID] = None
    payer_id: Optional[uuid.UUID] = None
    amount: int = Field(..., ge=0)
    currency: str
    payment_method: PaymentMethod
    status: PaymentStatus
    note: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    @field_validator("payment_type", "payment_method", "status", mode="before")
    @classmethod
    def normalize_enums(cls, value: object) -> object:
        return _upper(value)


__all__ = ["BookingRecord", "PaymentRecord", "SubscriptionRecord"]
