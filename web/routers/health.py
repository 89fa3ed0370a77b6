"""Readiness endpoints for the billing API."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from database import engine
from services.billing.config import get_billing_settings

router = APIRouter(prefix="/health", tags=["Health"])


def ping_database() -> Tuple[bool, Optional[str]]:
    """Run ``SELECT 1`` on a fresh connection; returns ``(ok, error)``."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return False, str(exc)
    return True, None


def billing_settings_summary() -> Dict[str, Any]:
    settings = get_billing_settings()
    return {
        "timezone": str(settings.timezone),
        "currency": settings.currency,
        "commissionRatePerHour": settings.commission_rate_per_hour,
        "trialDays": settings.trial_days,
    }


@router.get(
    "/status",
    summary="Service runtime status",
    description="Database connectivity plus the billing settings this instance resolved.",
)
def read_service_status():
    db_ok, db_error = ping_database()
    database: Dict[str, Any] = {"ok": db_ok}
    if db_error:
        database["error"] = db_error
    return {
        "status": "ok" if db_ok else "degraded",
        "database": database,
        "billing": billing_settings_summary(),
    }


__all__ = ["billing_settings_summary", "ping_database", "router"]
