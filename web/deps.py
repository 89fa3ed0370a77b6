"""Shared FastAPI dependencies for the billing API."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import SessionLocal, get_db
from services.billing.data_service import BillingDataService, SqlBillingDataService
from services.billing.session_context import BillingSessionContext
from services.id_utils import normalize_uuid

_OWNER_HEADER = "X-Owner-Id"
_ROLE_HEADER = "X-User-Role"
_ADMIN_ROLE = "ADMIN"


def _state_user_attr(request: Request, name: str) -> Optional[str]:
    user = getattr(request.state, "user", None)
    value = getattr(user, name, None) if user is not None else None
    return str(value) if value is not None else None


def get_owner_id(request: Request) -> uuid.UUID:
    """Identity of the calling owner, from the auth layer or the owner header."""
    raw = _state_user_attr(request, "id") or request.headers.get(_OWNER_HEADER)
    owner_id = normalize_uuid(raw)
    if owner_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "auth.required", "message": "An owner identity is required."},
        )
    return owner_id


def require_admin(request: Request) -> str:
    role = (_state_user_attr(request, "role") or request.headers.get(_ROLE_HEADER) or "").strip().upper()
    if role != _ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "auth.admin_required", "message": "Administrator access is required."},
        )
    return role


def get_billing_data_service(db: Session = Depends(get_db)) -> BillingDataService:
    return SqlBillingDataService(db)


def get_billing_context(request: Request) -> BillingSessionContext:
    """Context shared by requests served by this app instance."""
    context = getattr(request.app.state, "billing_context", None)
    if context is None:
        context = BillingSessionContext()
        request.app.state.billing_context = context
    return context


BillingDataServiceScope = Callable[[], ContextManager[BillingDataService]]


@contextmanager
def open_billing_data_service() -> Iterator[BillingDataService]:
    """Data service over a session it owns, closed when the block exits."""
    db = SessionLocal()
    try:
        yield SqlBillingDataService(db)
    finally:
        db.close()


def get_billing_data_service_scope() -> BillingDataServiceScope:
    """Scope for loaders handed to :class:`BillingSessionContext`.

    A refresh that times out keeps running in its worker thread, so it must
    not borrow the request session that ``get_db`` closes after the response.
    """
    return open_billing_data_service
