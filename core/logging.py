"""Shared logging helpers for the billing service."""

from __future__ import annotations

import logging
import os
from typing import Optional

try:  # pragma: no cover - optional dependency
    from google.cloud import logging as gcp_logging
except Exception:  # pragma: no cover - GCP logging optional
    gcp_logging = None

_CONFIGURED = False
_CLOUD_HANDLER_ATTACHED = False
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_TRUTHY = {"1", "true", "yes", "on"}


def _level_from_env(default: int) -> int:
    raw = (os.getenv("LOG_LEVEL") or "").strip().upper()
    if not raw:
        return default
    resolved = logging.getLevelName(raw)
    return resolved if isinstance(resolved, int) else default


def _maybe_setup_google_logging(level: int) -> None:
    """Route records to Google Cloud Logging when ENABLE_GOOGLE_CLOUD_LOGGING is set."""
    global _CLOUD_HANDLER_ATTACHED
    if _CLOUD_HANDLER_ATTACHED or gcp_logging is None:
        return
    if os.getenv("ENABLE_GOOGLE_CLOUD_LOGGING", "false").strip().lower() not in _TRUTHY:
        return
    try:
        client = gcp_logging.Client()
        client.setup_logging(log_level=level)
        _CLOUD_HANDLER_ATTACHED = True
    except Exception as exc:  # pragma: no cover - handler best-effort
        logging.getLogger(__name__).warning("Cloud logging handler unavailable: %s", exc)


def setup_logging(level: int = logging.INFO, *, fmt: Optional[str] = None) -> None:
    """Configure the root logger once per process."""
    global _CONFIGURED
    effective = _level_from_env(level)
    if not _CONFIGURED:
        logging.basicConfig(level=effective, format=fmt or _DEFAULT_FORMAT)
        _CONFIGURED = True
    _maybe_setup_google_logging(effective)


def get_logger(name: str, *, level: int = logging.INFO) -> logging.Logger:
    """Return a module logger, configuring the root logger on first use."""
    setup_logging(level=level)
    return logging.getLogger(name)
