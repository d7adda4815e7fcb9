"""QueryLog model: one audit row per lookup attempt."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class QueryLog(Base):
    """Immutable audit row for a lookup, successful or not."""

    __tablename__ = "query_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    officer_id = Column(String, ForeignKey("officers.id", ondelete="CASCADE"), nullable=False, index=True)
    officer_name = Column(String, nullable=True)
    type = Column(String, nullable=False, default="PRO")  # OSINT, PRO
    capability_key = Column(String, nullable=True, index=True)
    category = Column(String, nullable=False, index=True)
    input_data = Column(Text, nullable=True)
    source = Column(String, nullable=True)
    result_summary = Column(Text, nullable=True)
    full_result = Column(JSON, nullable=True)
    credits_used = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, index=True)  # Success, Failed, Pending, Rejected
    error_code = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    officer = relationship("Officer", back_populates="queries")
