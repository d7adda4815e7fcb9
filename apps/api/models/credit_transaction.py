"""CreditTransaction model for the officer credit ledger."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class CreditTransaction(Base):
    """Immutable credit ledger entry."""

    __tablename__ = "credit_transactions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    officer_id = Column(String, ForeignKey("officers.id", ondelete="CASCADE"), nullable=False, index=True)
    officer_name = Column(String, nullable=True)
    action = Column(String, nullable=False)  # Renewal, Deduction, Top-up, Refund
    credits = Column(Integer, nullable=False)  # positive amount; action gives the direction
    balance_after = Column(Integer, nullable=True)
    payment_mode = Column(String, nullable=True)
    remarks = Column(String, nullable=True)
    query_id = Column(String, ForeignKey("query_logs.id"), nullable=True, index=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    officer = relationship("Officer", back_populates="transactions")
