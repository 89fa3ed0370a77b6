"""Billing API schemas."""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from core.billing_constants import PaymentMethod, PaymentStatus, PaymentType, PlanType, SubscriptionStatus
from schemas.billing import PaymentRecord, SubscriptionRecord


class ReactivationDebtResponse(BaseModel):
    amount: int = Field(..., ge=0, description="Unpaid commission for the last cycle, in minor units.")
    cycleStart: str
    cycleEnd: str
    trialCutoff: str = Field(..., description="Bookings on or before this date were free.")
    completedBookings: int


class BillingSummaryResponse(BaseModel):
    ownerId: str
    state: str = Field(..., description="Resolved lifecycle state.")
    subscriptionId: Optional[str] = None
    subscriptionPlan: Optional[PlanType] = None
    subscriptionStatus: Optional[SubscriptionStatus] = None
    cycleStart: str
    cycleEnd: str
    totalBookings: int
    totalCommission: int
    currency: str
    trialDaysLeft: int
    trialEndsAt: Optional[str] = None
    autoUpgraded: bool = False
    requiresTerms: bool = Field(default=False, description="True when the owner still has to accept the terms.")
    reactivationDebt: Optional[ReactivationDebtResponse] = None


class SubscriptionResponse(BaseModel):
    id: str
    ownerId: str
    planType: PlanType
    status: SubscriptionStatus
    startDate: str
    endDate: Optional[str] = None
    createdAt: str
    pricePerMonth: int
    maxVenues: int
    maxCourtsPerVenue: int

    @classmethod
    def from_record(cls, record: SubscriptionRecord) -> "SubscriptionResponse":
        return cls(
            id=str(record.id),
            ownerId=str(record.owner_id),
            planType=record.plan_type,
            status=record.status,
            startDate=record.start_date.isoformat(),
            endDate=record.end_date.isoformat() if record.end_date else None,
            createdAt=record.created_at.isoformat(),
            pricePerMonth=record.price_per_month,
            maxVenues=record.max_venues,
            maxCourtsPerVenue=record.max_courts_per_venue,
        )


class ReactivationResponse(BaseModel):
    subscription: SubscriptionResponse
    debt: ReactivationDebtResponse


class SubscriptionUpdateRequest(BaseModel):
    planType: Optional[PlanType] = None
    status: Optional[SubscriptionStatus] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    pricePerMonth: Optional[int] = Field(default=None, ge=0)

    @field_validator("planType", "status", "startDate", "pricePerMonth", mode="before")
    @classmethod
    def reject_null(cls, value: object) -> object:
        # Only endDate may be cleared.
        if value is None:
            raise ValueError("must not be null")
        return value

    def to_fields(self) -> Dict[str, object]:
        mapping = {
            "planType": "plan_type",
            "status": "status",
            "startDate": "start_date",
            "endDate": "end_date",
            "pricePerMonth": "price_per_month",
        }
        provided = self.model_dump(exclude_unset=True)
        return {mapping[key]: value for key, value in provided.items()}


class PaymentCreateRequest(BaseModel):
    subscriptionId: str = Field(..., description="Subscription the payment settles.")
    amount: int = Field(..., ge=0)
    paymentMethod: PaymentMethod = PaymentMethod.TRANSFER
    paymentType: PaymentType = PaymentType.SUBSCRIPTION
    status: PaymentStatus = PaymentStatus.COMPLETED
    currency: Optional[str] = Field(default=None, description="Defaults to the configured billing currency.")
    note: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    paymentType: PaymentType
    subscriptionId: Optional[str] = None
    payerId: Optional[str] = None
    amount: int
    currency: str
    paymentMethod: PaymentMethod
    status: PaymentStatus
    note: Optional[str] = None
    paidAt: Optional[str] = None
    createdAt: str

    @classmethod
    def from_record(cls, record: PaymentRecord) -> "PaymentResponse":
        return cls(
            id=str(record.id),
            paymentType=record.payment_type,
            subscriptionId=str(record.subscription_id) if record.subscription_id else None,
            payerId=str(record.payer_id) if record.payer_id else None,
            amount=record.amount,
            currency=record.currency,
            paymentMethod=record.payment_method,
            status=record.status,
            note=record.note,
            paidAt=record.paid_at.isoformat() if record.paid_at else None,
            createdAt=record.created_at.isoformat(),
        )


class AdminVenueBillingResponse(BaseModel):
    venueId: str
    venueName: str
    ownerId: str
    subscription: Optional[SubscriptionResponse] = None
    totalRevenue: int
    totalBookings: int
    platformCommission: int
    revenueByCourt: Dict[str, int] = Field(default_factory=dict)


class AdminVenueBillingListResponse(BaseModel):
    venues: List[AdminVenueBillingResponse] = Field(default_factory=list)
