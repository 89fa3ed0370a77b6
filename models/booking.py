from __future__ import annotations

import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from database import Base


class Booking(Base):
    """Court reservation; times are stored as ``HH:MM[:SS]`` strings."""

    __tablename__ = "bookings"
    __table_args__ = {"extend_existing": True}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    venue_id = Column(UUID(as_uuid=True), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    court_id = Column(UUID(as_uuid=True), ForeignKey("courts.id", ondelete="SET NULL"), nullable=True, index=True)
    player_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(8), nullable=True)
    end_time = Column(String(8), nullable=True)
    price = Column(Integer, nullable=False, default=0)
    status = Column(String(16), nullable=False, default="ACTIVE", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
