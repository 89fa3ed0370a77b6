"""Routers mounted by ``web.main`` under ``/api/v1``."""

from . import admin_billing, billing, health

__all__ = ["admin_billing", "billing", "health"]
