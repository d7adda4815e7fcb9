"""Credit ledger: balance mutations, transaction rows and the query audit trail.

Every change to ``Officer.credits_remaining`` goes through a single-statement
conditional UPDATE in this module so concurrent lookups and admin adjustments
can never overdraw a balance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.capability import Capability
from models.credit_transaction import CreditTransaction
from models.officer import Officer
from models.query_log import QueryLog
from models.rate_plan import RatePlan
from services.lookups.types import CapabilityGrant, LedgerWriteError

logger = logging.getLogger(__name__)

CREDIT_ACTIONS = ("Renewal", "Deduction", "Top-up", "Refund")
_GRANTING_ACTIONS = {"Renewal", "Top-up"}


@dataclass(frozen=True)
class QueryAudit:
    """Labels written to the query log for one lookup."""

    category: str
    query_type: str
    source: str
    input_data: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _officer_name(db: AsyncSession, officer_id: str) -> Optional[str]:
    result = await db.execute(select(Officer.name).where(Officer.id == officer_id))
    return result.scalar_one_or_none()


async def _insert_query_log(
    db: AsyncSession,
    *,
    officer_id: str,
    officer_name: Optional[str],
    capability_key: Optional[str],
    audit: QueryAudit,
    status: str,
    summary: str,
    full_result: Any = None,
    credits_used: int = 0,
    error_code: Optional[str] = None,
) -> QueryLog:
    entry = QueryLog(
        id=str(uuid.uuid4()),
        officer_id=officer_id,
        officer_name=officer_name,
        type=audit.query_type,
        capability_key=capability_key,
        category=audit.category,
        input_data=audit.input_data,
        source=audit.source,
        result_summary=summary,
        full_result=full_result,
        credits_used=int(credits_used),
        status=status,
        error_code=error_code,
    )
    db.add(entry)
    await db.flush()
    return entry


async def record_success(
    db: AsyncSession,
    grant: CapabilityGrant,
    audit: QueryAudit,
    *,
    payload: Any,
    summary: str,
) -> Dict[str, Any]:
    """
    Charge the officer and append the Deduction + Success rows in one transaction.

    Raises LedgerWriteError after rolling back when the conditional update
    matches no row (balance moved below the cost since pre-flight) or any
    write fails. Nothing is committed in that case.
    """
    cost = max(int(grant.cost), 0)
    now = _now()
    try:
        charged = await db.execute(
            update(Officer)
            .where(Officer.id == grant.officer_id, Officer.credits_remaining >= cost)
            .values(
                credits_remaining=Officer.credits_remaining - cost,
                total_queries=Officer.total_queries + 1,
                last_active_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if charged.rowcount != 1:
            await db.rollback()
            logger.warning(
                "Charge of %s credits lost the race for officer %s (%s)",
                cost,
                grant.officer_id,
                grant.capability_key,
            )
            raise LedgerWriteError("Insufficient credits at time of charge. You have not been charged.")

        officer_row = (
            await db.execute(
                select(Officer.name, Officer.credits_remaining).where(Officer.id == grant.officer_id)
            )
        ).one()

        query = await _insert_query_log(
            db,
            officer_id=grant.officer_id,
            officer_name=officer_row.name,
            capability_key=grant.capability_key,
            audit=audit,
            status="Success",
            summary=summary,
            full_result=payload,
            credits_used=cost,
        )
        transaction = CreditTransaction(
            id=str(uuid.uuid4()),
            officer_id=grant.officer_id,
            officer_name=officer_row.name,
            action="Deduction",
            credits=cost,
            balance_after=int(officer_row.credits_remaining),
            payment_mode="Query",
            remarks=f"{audit.category} query",
            query_id=query.id,
        )
        db.add(transaction)
        await db.execute(
            update(Capability)
            .where(Capability.id == grant.capability_id)
            .values(usage_count=Capability.usage_count + 1, last_used_at=now)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Ledger write failed for officer %s (%s)", grant.officer_id, grant.capability_key)
        raise LedgerWriteError("Could not record the charge. You have not been charged.") from exc

    return {
        "query_id": query.id,
        "transaction_id": transaction.id,
        "charged": cost,
        "balance_after": int(officer_row.credits_remaining),
    }


async def record_failure(
    db: AsyncSession,
    officer_id: str,
    audit: QueryAudit,
    *,
    capability_key: Optional[str],
    summary: str,
    full_result: Any = None,
    status: str = "Failed",
    error_code: Optional[str] = None,
) -> QueryLog:
    """Append a single zero-cost query log row. Balance and transactions are untouched."""
    entry = await _insert_query_log(
        db,
        officer_id=officer_id,
        officer_name=await _officer_name(db, officer_id),
        capability_key=capability_key,
        audit=audit,
        status=status,
        summary=summary,
        full_result=full_result,
        credits_used=0,
        error_code=error_code,
    )
    await db.commit()
    return entry


async def adjust_credits(
    db: AsyncSession,
    officer_id: str,
    *,
    action: str,
    credits: int,
    payment_mode: Optional[str] = None,
    remarks: Optional[str] = None,
    created_by: Optional[str] = None,
) -> Dict[str, Any]:
    """Apply an admin Renewal, Top-up, Refund or Deduction."""
    if action not in CREDIT_ACTIONS:
        raise HTTPException(status_code=422, detail=f"action must be one of {', '.join(CREDIT_ACTIONS)}")
    amount = int(credits)
    if amount <= 0:
        raise HTTPException(status_code=422, detail="credits must be greater than 0")

    result = await db.execute(
        select(Officer.id, Officer.name, RatePlan.topup_allowed)
        .outerjoin(RatePlan, RatePlan.id == Officer.plan_id)
        .where(Officer.id == officer_id)
    )
    officer = result.first()
    if officer is None:
        raise HTTPException(status_code=404, detail="Officer not found")
    if action == "Top-up" and officer.topup_allowed is False:
        raise HTTPException(status_code=409, detail="Top-up is not allowed on this officer's plan.")

    statement = update(Officer).where(Officer.id == officer_id)
    if action == "Deduction":
        statement = statement.where(Officer.credits_remaining >= amount).values(
            credits_remaining=Officer.credits_remaining - amount
        )
    elif action in _GRANTING_ACTIONS:
        statement = statement.values(
            credits_remaining=Officer.credits_remaining + amount,
            total_credits=Officer.total_credits + amount,
        )
    else:
        # Refunds never lift the balance past total_credits.
        statement = statement.where(Officer.credits_remaining + amount <= Officer.total_credits).values(
            credits_remaining=Officer.credits_remaining + amount
        )

    changed = await db.execute(statement.execution_options(synchronize_session=False))
    if changed.rowcount != 1:
        await db.rollback()
        available = (
            await db.execute(select(Officer.credits_remaining).where(Officer.id == officer_id))
        ).scalar_one_or_none()
        if action == "Refund":
            raise HTTPException(
                status_code=409,
                detail=f"Refund of {amount} would exceed total credits. Available: {int(available or 0)}.",
            )
        raise HTTPException(
            status_code=402,
            detail=f"Insufficient credits. Required: {amount}, available: {int(available or 0)}.",
        )

    balance_after = (
        await db.execute(select(Officer.credits_remaining).where(Officer.id == officer_id))
    ).scalar_one()
    transaction = CreditTransaction(
        id=str(uuid.uuid4()),
        officer_id=officer_id,
        officer_name=officer.name,
        action=action,
        credits=amount,
        balance_after=int(balance_after),
        payment_mode=payment_mode,
        remarks=remarks,
        created_by=created_by,
    )
    db.add(transaction)
    await db.commit()
    await db.refresh(transaction)
    logger.info("%s of %s credits applied to officer %s by %s", action, amount, officer_id, created_by)
    return {"transaction": serialize_transaction(transaction), "balance_after": int(balance_after)}


def serialize_transaction(entry: CreditTransaction) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "officer_id": entry.officer_id,
        "officer_name": entry.officer_name,
        "action": entry.action,
        "credits": int(entry.credits or 0),
        "balance_after": entry.balance_after,
        "payment_mode": entry.payment_mode,
        "remarks": entry.remarks,
        "query_id": entry.query_id,
        "created_by": entry.created_by,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


async def list_transactions(
    db: AsyncSession,
    *,
    officer_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    statement = select(CreditTransaction)
    if officer_id:
        statement = statement.where(CreditTransaction.officer_id == officer_id)
    if action:
        statement = statement.where(CreditTransaction.action == action)
    statement = statement.order_by(CreditTransaction.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(statement)
    return [serialize_transaction(entry) for entry in result.scalars().all()]


async def get_credit_summary(officer_id: str, db: AsyncSession) -> Dict[str, Any]:
    officer = (
        await db.execute(
            select(Officer.credits_remaining, Officer.total_credits, Officer.plan_id).where(Officer.id == officer_id)
        )
    ).first()
    if officer is None:
        raise HTTPException(status_code=404, detail="Officer not found")

    used = await db.execute(
        select(func.coalesce(func.sum(CreditTransaction.credits), 0)).where(
            CreditTransaction.officer_id == officer_id,
            CreditTransaction.action == "Deduction",
        )
    )
    recent = await list_transactions(db, officer_id=officer_id, limit=10)
    return {
        "credits_remaining": int(officer.credits_remaining or 0),
        "total_credits": int(officer.total_credits or 0),
        "credits_used": int(used.scalar() or 0),
        "plan_id": officer.plan_id,
        "recent_transactions": recent,
    }
