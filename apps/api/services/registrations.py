"""
Officer registration review.

A registration moves exactly once: ``pending -> approved`` or
``pending -> rejected``. Approval creates the officer, its opening Renewal and
the status change in one transaction, so a failed officer insert leaves the
registration pending.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional
import uuid

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.registration import OfficerRegistration
from services.officers import ensure_unique_contact, get_plan_or_404, normalize_mobile, stage_officer

logger = logging.getLogger(__name__)

REGISTRATION_FIELDS = ("name", "email", "mobile", "station", "department", "rank", "badge_number", "additional_info")


class RegistrationStateError(RuntimeError):
    """Raised when a registration is asked to leave a terminal state."""

    def __init__(self, registration_id: str, status: str) -> None:
        super().__init__(f"Registration {registration_id} is already {status}.")
        self.registration_id = registration_id
        self.status = status


def serialize_registration(registration: OfficerRegistration) -> Dict[str, Any]:
    return {
        "id": registration.id,
        "name": registration.name,
        "email": registration.email,
        "mobile": registration.mobile,
        "station": registration.station,
        "department": registration.department,
        "rank": registration.rank,
        "badge_number": registration.badge_number,
        "additional_info": registration.additional_info,
        "status": registration.status,
        "reviewed_at": registration.reviewed_at.isoformat() if registration.reviewed_at else None,
        "reviewed_by": registration.reviewed_by,
        "rejection_reason": registration.rejection_reason,
        "officer_id": registration.officer_id,
        "created_at": registration.created_at.isoformat() if registration.created_at else None,
    }


async def submit_registration(db: AsyncSession, fields: Dict[str, Any]) -> Dict[str, Any]:
    email = str(fields["email"]).strip().lower()
    duplicate = await db.execute(
        select(OfficerRegistration.id)
        .where(OfficerRegistration.email == email, OfficerRegistration.status == "pending")
        .limit(1)
    )
    if duplicate.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="A registration for this email is already pending review.")

    registration = OfficerRegistration(
        id=str(uuid.uuid4()),
        status="pending",
        **{name: fields.get(name) for name in REGISTRATION_FIELDS},
    )
    registration.email = email
    registration.mobile = normalize_mobile(fields["mobile"])
    db.add(registration)
    await db.commit()
    await db.refresh(registration)
    logger.info("Registration %s submitted", registration.id)
    return serialize_registration(registration)


async def list_registrations(
    db: AsyncSession,
    *,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    statement = select(OfficerRegistration)
    if status:
        statement = statement.where(OfficerRegistration.status == status)
    statement = statement.order_by(OfficerRegistration.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(statement)
    return [serialize_registration(item) for item in result.scalars().all()]


async def _get_pending(db: AsyncSession, registration_id: str) -> OfficerRegistration:
    registration = (
        await db.execute(select(OfficerRegistration).where(OfficerRegistration.id == registration_id))
    ).scalar_one_or_none()
    if registration is None:
        raise HTTPException(status_code=404, detail="Registration not found")
    if registration.status != "pending":
        raise RegistrationStateError(registration.id, registration.status)
    return registration


async def _close_pending(db: AsyncSession, registration_id: str, **values: Any) -> None:
    """Move a registration out of ``pending``; losing a concurrent review rolls back."""
    changed = await db.execute(
        update(OfficerRegistration)
        .where(OfficerRegistration.id == registration_id, OfficerRegistration.status == "pending")
        .values(reviewed_at=datetime.now(timezone.utc), **values)
        .execution_options(synchronize_session=False)
    )
    if changed.rowcount == 1:
        return
    await db.rollback()
    current = (
        await db.execute(select(OfficerRegistration.status).where(OfficerRegistration.id == registration_id))
    ).scalar_one_or_none()
    logger.warning("Registration %s was reviewed concurrently (now %s)", registration_id, current)
    raise RegistrationStateError(registration_id, current or "gone")


async def approve(
    db: AsyncSession,
    registration_id: str,
    *,
    plan_id: str,
    initial_password: str,
    approved_by: str,
) -> Dict[str, Any]:
    """Create the officer on ``plan_id`` and mark the registration approved."""
    registration = await _get_pending(db, registration_id)
    plan = await get_plan_or_404(db, plan_id)
    await ensure_unique_contact(db, email=registration.email, mobile=normalize_mobile(registration.mobile))

    officer = stage_officer(
        db,
        fields={name: getattr(registration, name) for name in REGISTRATION_FIELDS if name != "additional_info"},
        password=initial_password,
        plan=plan,
        created_by=approved_by,
    )
    try:
        await db.flush()
        await _close_pending(
            db,
            registration_id,
            status="approved",
            reviewed_by=approved_by,
            officer_id=officer.id,
        )
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Approval of registration %s failed: %s", registration_id, exc.orig)
        raise HTTPException(status_code=409, detail="An officer with this email or mobile already exists.") from exc

    await db.refresh(registration)
    logger.info("Registration %s approved by %s as officer %s", registration_id, approved_by, officer.id)
    return {
        "registration": serialize_registration(registration),
        "officer_id": officer.id,
        "credits_remaining": int(officer.credits_remaining or 0),
        "total_credits": int(officer.total_credits or 0),
    }


async def reject(
    db: AsyncSession,
    registration_id: str,
    *,
    reason: str,
    rejected_by: str,
) -> Dict[str, Any]:
    reason = str(reason or "").strip()
    if not reason:
        raise HTTPException(status_code=422, detail="A rejection reason is required.")
    registration = await _get_pending(db, registration_id)
    await _close_pending(
        db,
        registration_id,
        status="rejected",
        rejection_reason=reason,
        reviewed_by=rejected_by,
    )
    await db.commit()
    await db.refresh(registration)
    logger.info("Registration %s rejected by %s", registration_id, rejected_by)
    return serialize_registration(registration)
