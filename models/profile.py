import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from database import Base


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = {"extend_existing": True}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    full_name = Column(String(160), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    role = Column(String(16), nullable=False, default="PLAYER")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
