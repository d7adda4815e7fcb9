"""Officer account management."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
import uuid

from fastapi import HTTPException
from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.credit_transaction import CreditTransaction
from models.officer import Officer
from models.query_log import QueryLog
from models.rate_plan import RatePlan
from models.registration import OfficerRegistration
from services.crypto import hash_password

logger = logging.getLogger(__name__)

OFFICER_STATUSES = ("Active", "Suspended")
PROFILE_FIELDS = ("name", "department", "rank", "badge_number", "station", "telegram_id")


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_officer(officer: Officer, plan_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": officer.id,
        "name": officer.name,
        "email": officer.email,
        "mobile": officer.mobile,
        "telegram_id": officer.telegram_id,
        "status": officer.status,
        "department": officer.department,
        "rank": officer.rank,
        "badge_number": officer.badge_number,
        "station": officer.station,
        "plan_id": officer.plan_id,
        "plan_name": plan_name,
        "credits_remaining": int(officer.credits_remaining or 0),
        "total_credits": int(officer.total_credits or 0),
        "total_queries": int(officer.total_queries or 0),
        "last_active_at": _iso(officer.last_active_at),
        "created_at": _iso(officer.created_at),
    }


def normalize_mobile(value: str) -> str:
    digits = "".join(ch for ch in str(value or "") if ch.isdigit())
    if len(digits) < 10:
        raise HTTPException(status_code=422, detail="mobile must contain at least 10 digits")
    return digits[-10:]


async def get_plan_or_404(db: AsyncSession, plan_id: str) -> RatePlan:
    plan = (await db.execute(select(RatePlan).where(RatePlan.id == plan_id))).scalar_one_or_none()
    if plan is None:
        raise HTTPException(status_code=404, detail="Rate plan not found")
    return plan


async def ensure_unique_contact(
    db: AsyncSession,
    *,
    email: Optional[str],
    mobile: Optional[str],
    exclude_id: Optional[str] = None,
) -> None:
    clauses = []
    if email:
        clauses.append(Officer.email == email)
    if mobile:
        clauses.append(Officer.mobile == mobile)
    if not clauses:
        return
    statement = select(Officer.id).where(or_(*clauses))
    if exclude_id:
        statement = statement.where(Officer.id != exclude_id)
    if (await db.execute(statement.limit(1))).scalar_one_or_none():
        raise HTTPException(status_code=409, detail="An officer with this email or mobile already exists.")


def stage_officer(
    db: AsyncSession,
    *,
    fields: Dict[str, Any],
    password: str,
    plan: Optional[RatePlan],
    created_by: Optional[str] = None,
) -> Officer:
    """
    Add an officer and, when the plan grants credits, its opening Renewal.

    Nothing is flushed or committed; the caller owns the transaction.
    """
    opening = int(plan.default_credits or 0) if plan else 0
    officer = Officer(
        id=str(uuid.uuid4()),
        email=str(fields["email"]).strip().lower(),
        mobile=normalize_mobile(fields["mobile"]),
        password_hash=hash_password(password),
        status="Active",
        plan_id=plan.id if plan else None,
        credits_remaining=opening,
        total_credits=opening,
        total_queries=0,
        **{name: fields.get(name) for name in PROFILE_FIELDS},
    )
    db.add(officer)
    if opening > 0:
        db.add(
            CreditTransaction(
                id=str(uuid.uuid4()),
                officer_id=officer.id,
                officer_name=officer.name,
                action="Renewal",
                credits=opening,
                balance_after=opening,
                payment_mode="Plan",
                remarks=f"Opening balance for plan {plan.plan_name}",
                created_by=created_by,
            )
        )
    return officer


async def list_officers(
    db: AsyncSession,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    statement = select(Officer, RatePlan.plan_name).outerjoin(RatePlan, RatePlan.id == Officer.plan_id)
    if status:
        statement = statement.where(Officer.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(Officer.name.ilike(pattern), Officer.email.ilike(pattern), Officer.mobile.ilike(pattern))
        )
    statement = statement.order_by(Officer.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(statement)
    return [serialize_officer(officer, plan_name) for officer, plan_name in result.all()]


async def get_officer(db: AsyncSession, officer_id: str) -> Dict[str, Any]:
    row = (
        await db.execute(
            select(Officer, RatePlan.plan_name)
            .outerjoin(RatePlan, RatePlan.id == Officer.plan_id)
            .where(Officer.id == officer_id)
            .execution_options(populate_existing=True)
        )
    ).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Officer not found")
    return serialize_officer(row[0], row[1])


async def create_officer(
    db: AsyncSession,
    fields: Dict[str, Any],
    *,
    password: str,
    plan_id: Optional[str] = None,
    created_by: Optional[str] = None,
) -> Dict[str, Any]:
    plan = await get_plan_or_404(db, plan_id) if plan_id else None
    email = str(fields["email"]).strip().lower()
    await ensure_unique_contact(db, email=email, mobile=normalize_mobile(fields["mobile"]))

    officer = stage_officer(db, fields=fields, password=password, plan=plan, created_by=created_by)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail="An officer with this email or mobile already exists.") from exc
    logger.info("Officer %s created by %s", officer.id, created_by)
    return await get_officer(db, officer.id)


async def update_officer(
    db: AsyncSession,
    officer_id: str,
    updates: Dict[str, Any],
    *,
    updated_by: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Apply profile changes. A plan change resets the balance to the new plan's
    default credits and records the Renewal that did it.
    """
    officer = (await db.execute(select(Officer).where(Officer.id == officer_id))).scalar_one_or_none()
    if officer is None:
        raise HTTPException(status_code=404, detail="Officer not found")

    email = str(updates["email"]).strip().lower() if updates.get("email") else None
    mobile = normalize_mobile(updates["mobile"]) if updates.get("mobile") else None
    await ensure_unique_contact(db, email=email, mobile=mobile, exclude_id=officer_id)

    for name in PROFILE_FIELDS:
        if updates.get(name) is not None:
            setattr(officer, name, updates[name])
    if email:
        officer.email = email
    if mobile:
        officer.mobile = mobile
    if updates.get("password"):
        officer.password_hash = hash_password(updates["password"])
    if updates.get("status") is not None:
        if updates["status"] not in OFFICER_STATUSES:
            raise HTTPException(status_code=422, detail="status must be Active or Suspended")
        officer.status = updates["status"]

    new_plan_id = updates.get("plan_id")
    if new_plan_id and new_plan_id != officer.plan_id:
        plan = await get_plan_or_404(db, new_plan_id)
        opening = int(plan.default_credits or 0)
        officer.plan_id = plan.id
        await db.flush()
        await db.execute(
            update(Officer)
            .where(Officer.id == officer_id)
            .values(credits_remaining=opening, total_credits=opening)
            .execution_options(synchronize_session=False)
        )
        db.add(
            CreditTransaction(
                id=str(uuid.uuid4()),
                officer_id=officer_id,
                officer_name=officer.name,
                action="Renewal",
                credits=opening,
                balance_after=opening,
                payment_mode="Plan",
                remarks=f"Plan changed to {plan.plan_name}",
                created_by=updated_by,
            )
        )

    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail="An officer with this email or mobile already exists.") from exc
    db.expunge(officer)
    return await get_officer(db, officer_id)


async def set_officer_status(db: AsyncSession, officer_id: str, status: str) -> Dict[str, Any]:
    if status not in OFFICER_STATUSES:
        raise HTTPException(status_code=422, detail="status must be Active or Suspended")
    result = await db.execute(
        update(Officer)
        .where(Officer.id == officer_id)
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise HTTPException(status_code=404, detail="Officer not found")
    await db.commit()
    return await get_officer(db, officer_id)


async def delete_officer(db: AsyncSession, officer_id: str) -> None:
    """Delete an officer with no ledger or query history. Anyone else is suspended instead."""
    exists = (await db.execute(select(Officer.id).where(Officer.id == officer_id))).scalar_one_or_none()
    if exists is None:
        raise HTTPException(status_code=404, detail="Officer not found")

    has_queries = (
        await db.execute(select(QueryLog.id).where(QueryLog.officer_id == officer_id).limit(1))
    ).scalar_one_or_none()
    has_transactions = (
        await db.execute(select(CreditTransaction.id).where(CreditTransaction.officer_id == officer_id).limit(1))
    ).scalar_one_or_none()
    if has_queries or has_transactions:
        raise HTTPException(
            status_code=409,
            detail="Officer has query or credit history and cannot be deleted. Suspend the account instead.",
        )

    await db.execute(
        update(OfficerRegistration)
        .where(OfficerRegistration.officer_id == officer_id)
        .values(officer_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Officer).where(Officer.id == officer_id))
    await db.commit()
    logger.info("Officer %s deleted", officer_id)
