"""Optional .env loading for local runs."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv  # type: ignore

from core.logging import get_logger

logger = get_logger(__name__)


def load_dotenv_if_available(path: Optional[Path] = None) -> bool:
    """Load variables from ``path`` (default ``.env``) without overriding the process env."""

    env_path = path or Path(".env")
    if not env_path.exists():
        return False
    try:
        load_dotenv(dotenv_path=env_path, override=False)
    except Exception as exc:  # pragma: no cover - best effort
        logger.warning("Failed to load .env file %s: %s", env_path, exc)
        return False
    logger.debug("Loaded environment variables from %s", env_path)
    return True


__all__ = ["load_dotenv_if_available"]
