"""Billing error types carrying API-friendly detail payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(slots=True)
class BillingError(RuntimeError):
    code: str
    message: str
    owner_id: Optional[str] = None

    def __post_init__(self) -> None:
        RuntimeError.__init__(self, self.message)

    def to_detail(self) -> Dict[str, Optional[str]]:
        detail: Dict[str, Optional[str]] = {"code": self.code, "message": self.message}
        if self.owner_id:
            detail["ownerId"] = self.owner_id
        return detail


class BillingDataError(BillingError):
    """A read against the data service failed; the caller should retry later."""


class BillingMutationError(BillingError):
    """A write was rejected or failed; local state must not be updated."""


class BillingNotFoundError(BillingError):
    """The referenced subscription does not exist."""


class BillingConflictError(BillingError):
    """The subscription is not in a state that allows the requested transition."""


__all__ = ["BillingConflictError", "BillingDataError", "BillingError", "BillingMutationError", "BillingNotFoundError"]
