"""Rate plan models: plan bundles and their per-capability pricing."""

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class RatePlan(Base):
    """Named bundle of enabled capabilities and a default credit allocation."""

    __tablename__ = "rate_plans"
    __table_args__ = (UniqueConstraint("plan_name", "user_type", name="uq_rate_plans_name_user_type"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    plan_name = Column(String, nullable=False)
    user_type = Column(String, nullable=False, default="Police")  # Police, Private, Custom
    monthly_fee = Column(Float, nullable=False, default=0.0)
    default_credits = Column(Integer, nullable=False, default=0)
    renewal_required = Column(Boolean, nullable=False, default=True)
    topup_allowed = Column(Boolean, nullable=False, default=True)
    status = Column(String, nullable=False, default="Active")  # Active, Inactive
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    officers = relationship("Officer", back_populates="plan")
    capabilities = relationship("PlanCapability", back_populates="plan")


class PlanCapability(Base):
    """Enablement and price of one capability inside one plan."""

    __tablename__ = "plan_capabilities"
    __table_args__ = (UniqueConstraint("plan_id", "capability_id", name="uq_plan_capabilities_plan_capability"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    plan_id = Column(String, ForeignKey("rate_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    capability_id = Column(String, ForeignKey("capabilities.id", ondelete="CASCADE"), nullable=False, index=True)
    enabled = Column(Boolean, nullable=False, default=True)
    credit_cost = Column(Integer, nullable=True)  # None falls back to Capability.default_credit_charge
    buy_price = Column(Float, nullable=False, default=0.0)
    sell_price = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    plan = relationship("RatePlan", back_populates="capabilities")
    capability = relationship("Capability", back_populates="plan_links")
