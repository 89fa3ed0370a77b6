import os
from typing import Generator, Optional

import pytest

os.environ.setdefault("DATABASE_ALLOW_NON_POSTGRES", "1")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DATABASE_URL", os.getenv("DATABASE_URL", os.environ["TEST_DATABASE_URL"]))

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.dialects.postgresql import UUID  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.ext.compiler import compiles  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from database import Base  # noqa: E402
import models  # noqa: E402,F401
from services.billing.config import clear_billing_settings_cache  # noqa: E402


# Render PostgreSQL-only column types when the suite runs on SQLite.
@compiles(UUID, "sqlite")  # type: ignore[misc]
def _compile_uuid_sqlite(_element, _compiler, **_kw):  # pragma: no cover - sqlite compat
    return "CHAR(32)"


_BILLING_ENV_KEYS = (
    "BILLING_COMMISSION_RATE_PER_HOUR",
    "BILLING_TRIAL_DAYS",
    "BILLING_TIMEZONE",
    "BILLING_CURRENCY",
    "BILLING_FETCH_TIMEOUT_SECONDS",
    "BILLING_CACHE_TTL_SECONDS",
)


@pytest.fixture(autouse=True)
def _reset_billing_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run every test against default billing settings."""
    for key in _BILLING_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    clear_billing_settings_cache()
    yield
    clear_billing_settings_cache()


def _test_database_url() -> str:
    url: Optional[str] = os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL")
    return url or "sqlite+pysqlite:///:memory:"


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    database_url = _test_database_url()

    engine_kwargs = {}
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if ":memory:" in database_url:
            engine_kwargs["poolclass"] = StaticPool
    test_engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Generator[Session, None, None]:
    factory = sessionmaker(bind=engine, autoflush=False)
    session = factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
