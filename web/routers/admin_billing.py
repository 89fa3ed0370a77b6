"""Admin billing endpoints: subscription edits, manual payments and venue commission."""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from core.logging import get_logger
from schemas.api.billing import (
    AdminVenueBillingListResponse,
    AdminVenueBillingResponse,
    PaymentCreateRequest,
    PaymentResponse,
    SubscriptionResponse,
    SubscriptionUpdateRequest,
)
from services.billing.billing_service import (
    build_admin_venue_overview,
    record_manual_payment,
    update_subscription_fields,
)
from services.billing.data_service import BillingDataService
from services.billing.errors import BillingError
from services.billing.session_context import BillingSessionContext
from services.id_utils import normalize_uuid
from web.deps import get_billing_context, get_billing_data_service, require_admin
from web.routers.billing import raise_billing_http_error

router = APIRouter(prefix="/admin/billing", tags=["Admin Billing"], dependencies=[Depends(require_admin)])

logger = get_logger(__name__)


def _parse_id(value: str, *, field: str) -> uuid.UUID:
    parsed = normalize_uuid(value)
    if parsed is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "billing.invalid_id", "message": f"{field} must be a valid UUID."},
        )
    return parsed


@router.get("/subscriptions", response_model=List[SubscriptionResponse], summary="List every subscription.")
def list_subscriptions(
    data_service: BillingDataService = Depends(get_billing_data_service),
) -> List[SubscriptionResponse]:
    try:
        records = data_service.list_subscriptions()
    except BillingError as exc:
        raise_billing_http_error(exc)
    return [SubscriptionResponse.from_record(record) for record in records]


@router.patch(
    "/subscriptions/{subscription_id}",
    response_model=SubscriptionResponse,
    summary="Edit plan, status, dates or price of a subscription.",
)
def patch_subscription(
    subscription_id: str,
    payload: SubscriptionUpdateRequest,
    data_service: BillingDataService = Depends(get_billing_data_service),
    context: BillingSessionContext = Depends(get_billing_context),
) -> SubscriptionResponse:
    fields = payload.to_fields()
    if not fields:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "billing.empty_update", "message": "No subscription fields were provided."},
        )
    try:
        record = update_subscription_fields(data_service, _parse_id(subscription_id, field="subscription_id"), **fields)
    except BillingError as exc:
        logger.warning("Admin subscription update failed for %s: %s", subscription_id, exc.code)
        raise_billing_http_error(exc)
    context.invalidate(record.owner_id)
    return SubscriptionResponse.from_record(record)


@router.get("/payments", response_model=List[PaymentResponse], summary="List recorded payments.")
def list_payments(
    limit: int = Query(default=200, ge=1, le=1000),
    data_service: BillingDataService = Depends(get_billing_data_service),
) -> List[PaymentResponse]:
    try:
        records = data_service.list_payments(limit=limit)
    except BillingError as exc:
        raise_billing_http_error(exc)
    return [PaymentResponse.from_record(record) for record in records]


@router.post(
    "/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a manual payment.",
)
def create_payment(
    payload: PaymentCreateRequest,
    data_service: BillingDataService = Depends(get_billing_data_service),
) -> PaymentResponse:
    try:
        record = record_manual_payment(
            data_service,
            subscription_id=_parse_id(payload.subscriptionId, field="subscriptionId"),
            amount=payload.amount,
            payment_method=payload.paymentMethod,
            payment_type=payload.paymentType,
            status=payload.status,
            currency=payload.currency,
            note=payload.note,
        )
    except BillingError as exc:
        logger.warning("Manual payment failed for subscription=%s: %s", payload.subscriptionId, exc.code)
        raise_billing_http_error(exc)
    return PaymentResponse.from_record(record)


@router.get("/venues", response_model=AdminVenueBillingListResponse, summary="Per-venue revenue and commission.")
def list_venue_billing(
    data_service: BillingDataService = Depends(get_billing_data_service),
) -> AdminVenueBillingListResponse:
    try:
        overview = build_admin_venue_overview(data_service)
    except BillingError as exc:
        raise_billing_http_error(exc)
    return AdminVenueBillingListResponse(
        venues=[
            AdminVenueBillingResponse(
                venueId=str(item.venue.id),
                venueName=item.venue.name,
                ownerId=str(item.venue.owner_id),
                subscription=SubscriptionResponse.from_record(item.subscription) if item.subscription else None,
                totalRevenue=item.summary.total_revenue,
                totalBookings=item.summary.total_bookings,
                platformCommission=item.summary.platform_commission,
                revenueByCourt=item.summary.revenue_by_court,
            )
            for item in overview
        ]
    )
