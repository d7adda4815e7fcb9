"""Capability model: routing table entry for one external lookup."""

from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class Capability(Base):
    """External lookup with its vendor credential and default price."""

    __tablename__ = "capabilities"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    key = Column(String, unique=True, nullable=False, index=True)  # stable slug, see services.lookups.registry
    name = Column(String, unique=True, nullable=False)
    service_provider = Column(String, nullable=True)
    type = Column(String, nullable=False, default="PRO")  # FREE, PRO, DISABLED
    api_key_encrypted = Column(Text, nullable=True)
    key_status = Column(String, nullable=False, default="Inactive")  # Active, Inactive
    default_credit_charge = Column(Integer, nullable=False, default=1)
    global_buy_price = Column(Float, nullable=False, default=0.0)
    global_sell_price = Column(Float, nullable=False, default=0.0)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    plan_links = relationship("PlanCapability", back_populates="capability")
