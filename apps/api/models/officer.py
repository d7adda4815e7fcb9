"""Officer model for portal users who run lookups."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class Officer(Base):
    """Officer account with a metered credit balance."""

    __tablename__ = "officers"
    __table_args__ = (CheckConstraint("credits_remaining >= 0", name="ck_officers_credits_non_negative"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    mobile = Column(String, unique=True, nullable=False, index=True)
    telegram_id = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    status = Column(String, nullable=False, default="Active")  # Active, Suspended
    department = Column(String, nullable=True)
    rank = Column(String, nullable=True)
    badge_number = Column(String, nullable=True)
    station = Column(String, nullable=True)
    plan_id = Column(String, ForeignKey("rate_plans.id", ondelete="SET NULL"), nullable=True, index=True)
    # Mutated only through single-statement conditional updates in services.ledger.
    credits_remaining = Column(Integer, nullable=False, default=0)
    total_credits = Column(Integer, nullable=False, default=0)
    total_queries = Column(Integer, nullable=False, default=0)
    last_active_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    plan = relationship("RatePlan", back_populates="officers")
    transactions = relationship("CreditTransaction", back_populates="officer")
    queries = relationship("QueryLog", back_populates="officer")
