"""Billing-cycle, commission and subscription lifecycle engine."""

from .billing_service import (
    BillingOverview,
    accept_terms,
    apply_auto_upgrade,
    cancel_subscription,
    reactivate_subscription,
    resolve_owner_billing,
)
from .commission import compute_commission
from .cycle import BillingCycle, compute_billing_cycle, local_date_string
from .debt import compute_reactivation_debt
from .errors import BillingDataError, BillingError, BillingMutationError
from .lifecycle import SubscriptionState, resolve_subscription_state

__all__ = [
    "BillingCycle",
    "BillingDataError",
    "BillingError",
    "BillingMutationError",
    "BillingOverview",
    "SubscriptionState",
    "accept_terms",
    "apply_auto_upgrade",
    "cancel_subscription",
    "compute_billing_cycle",
    "compute_commission",
    "compute_reactivation_debt",
    "local_date_string",
    "reactivate_subscription",
    "resolve_owner_billing",
    "resolve_subscription_state",
]
