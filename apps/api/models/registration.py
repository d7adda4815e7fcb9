"""OfficerRegistration model for applications awaiting admin review."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import func
import uuid

from database import Base


class OfficerRegistration(Base):
    """Pending officer application. Moves once: pending -> approved | rejected."""

    __tablename__ = "officer_registrations"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    mobile = Column(String, nullable=False)
    station = Column(String, nullable=False)
    department = Column(String, nullable=True)
    rank = Column(String, nullable=True)
    badge_number = Column(String, nullable=True)
    additional_info = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    officer_id = Column(String, ForeignKey("officers.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
