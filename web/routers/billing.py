"""Owner-facing billing endpoints: summary, terms acceptance, cancel and reactivation."""

from __future__ import annotations

import uuid
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from core.logging import get_logger
from schemas.api.billing import (
    BillingSummaryResponse,
    ReactivationDebtResponse,
    ReactivationResponse,
    SubscriptionResponse,
)
from services.billing.billing_service import (
    accept_terms,
    cancel_subscription,
    reactivate_subscription,
    resolve_owner_billing,
)
from services.billing.data_service import BillingDataService
from services.billing.errors import (
    BillingConflictError,
    BillingDataError,
    BillingError,
    BillingNotFoundError,
)
from services.billing.session_context import BillingSessionContext
from web.deps import (
    BillingDataServiceScope,
    get_billing_context,
    get_billing_data_service,
    get_billing_data_service_scope,
    get_owner_id,
)

router = APIRouter(prefix="/billing", tags=["Billing"])

logger = get_logger(__name__)


def raise_billing_http_error(exc: BillingError) -> NoReturn:
    """Translate a billing error into the matching HTTP status."""
    if isinstance(exc, BillingNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, BillingConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, BillingDataError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_502_BAD_GATEWAY
    raise HTTPException(status_code=code, detail=exc.to_detail()) from exc


@router.get("/summary", response_model=BillingSummaryResponse, summary="Resolve the owner's current billing state.")
async def read_billing_summary(
    owner_id: uuid.UUID = Depends(get_owner_id),
    data_scope: BillingDataServiceScope = Depends(get_billing_data_service_scope),
    context: BillingSessionContext = Depends(get_billing_context),
) -> BillingSummaryResponse:
    def _load():
        with data_scope() as data_service:
            return resolve_owner_billing(data_service, owner_id)

    overview = await context.refresh(owner_id, _load)
    if overview is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "billing.unavailable", "message": "Billing data is temporarily unavailable. Try again shortly."},
        )
    return BillingSummaryResponse(**overview.to_dict())


@router.post(
    "/terms/accept",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Accept the terms and start the free trial.",
)
def accept_billing_terms(
    owner_id: uuid.UUID = Depends(get_owner_id),
    data_service: BillingDataService = Depends(get_billing_data_service),
    context: BillingSessionContext = Depends(get_billing_context),
) -> SubscriptionResponse:
    try:
        record = accept_terms(data_service, owner_id)
    except BillingError as exc:
        raise_billing_http_error(exc)
    context.invalidate(owner_id)
    return SubscriptionResponse.from_record(record)


@router.post("/cancel", response_model=SubscriptionResponse, summary="Cancel the owner's subscription.")
def cancel_billing_subscription(
    owner_id: uuid.UUID = Depends(get_owner_id),
    data_service: BillingDataService = Depends(get_billing_data_service),
    context: BillingSessionContext = Depends(get_billing_context),
) -> SubscriptionResponse:
    try:
        record = cancel_subscription(data_service, owner_id)
    except BillingError as exc:
        logger.warning("Cancellation failed for owner=%s: %s", owner_id, exc.code)
        raise_billing_http_error(exc)
    context.invalidate(owner_id)
    return SubscriptionResponse.from_record(record)


@router.post("/reactivate", response_model=ReactivationResponse, summary="Reactivate a cancelled subscription.")
def reactivate_billing_subscription(
    owner_id: uuid.UUID = Depends(get_owner_id),
    data_service: BillingDataService = Depends(get_billing_data_service),
    context: BillingSessionContext = Depends(get_billing_context),
) -> ReactivationResponse:
    try:
        result = reactivate_subscription(data_service, owner_id)
    except BillingError as exc:
        logger.warning("Reactivation failed for owner=%s: %s", owner_id, exc.code)
        raise_billing_http_error(exc)
    context.invalidate(owner_id)
    return ReactivationResponse(
        subscription=SubscriptionResponse.from_record(result.subscription),
        debt=ReactivationDebtResponse(**result.debt.to_dict()),
    )
