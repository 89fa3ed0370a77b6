"""Owner billing relationship rows."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from database import Base


class Subscription(Base):
    """One owner's plan; the row with the latest ``created_at`` is authoritative."""

    __tablename__ = "subscriptions"
    __table_args__ = {"extend_existing": True}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_type = Column(String(16), nullable=False, default="FREE")
    status = Column(String(24), nullable=False, default="ACTIVE", index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    price_per_month = Column(Integer, nullable=False, default=0)
    max_venues = Column(Integer, nullable=False, default=1)
    max_courts_per_venue = Column(Integer, nullable=False, default=5)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
