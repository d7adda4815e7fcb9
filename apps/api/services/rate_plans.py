"""Rate plan management and per-plan capability pricing."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional
import uuid

from fastapi import HTTPException
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.capability import Capability
from models.officer import Officer
from models.rate_plan import PlanCapability, RatePlan

logger = logging.getLogger(__name__)

PLAN_FIELDS = ("plan_name", "user_type", "monthly_fee", "default_credits", "renewal_required", "topup_allowed", "status")


def serialize_plan(plan: RatePlan, capabilities: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    payload = {
        "id": plan.id,
        "plan_name": plan.plan_name,
        "user_type": plan.user_type,
        "monthly_fee": float(plan.monthly_fee or 0.0),
        "default_credits": int(plan.default_credits or 0),
        "renewal_required": bool(plan.renewal_required),
        "topup_allowed": bool(plan.topup_allowed),
        "status": plan.status,
        "created_at": plan.created_at.isoformat() if plan.created_at else None,
    }
    if capabilities is not None:
        payload["capabilities"] = capabilities
    return payload


async def _plan_capabilities(db: AsyncSession, plan_id: str) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(PlanCapability, Capability.key, Capability.name, Capability.default_credit_charge)
        .join(Capability, Capability.id == PlanCapability.capability_id)
        .where(PlanCapability.plan_id == plan_id)
        .order_by(Capability.name.asc())
    )
    return [
        {
            "capability_id": link.capability_id,
            "capability_key": key,
            "capability_name": name,
            "enabled": bool(link.enabled),
            "credit_cost": link.credit_cost if link.credit_cost is not None else int(default_charge or 0),
            "buy_price": float(link.buy_price or 0.0),
            "sell_price": float(link.sell_price or 0.0),
        }
        for link, key, name, default_charge in result.all()
    ]


async def _replace_capabilities(db: AsyncSession, plan_id: str, settings_rows: Iterable[Dict[str, Any]]) -> None:
    rows = list(settings_rows)
    capability_ids = {row["capability_id"] for row in rows}
    if len(capability_ids) != len(rows):
        raise HTTPException(status_code=422, detail="Each capability may appear only once per plan")
    if capability_ids:
        known = await db.execute(select(Capability.id).where(Capability.id.in_(capability_ids)))
        missing = capability_ids - set(known.scalars().all())
        if missing:
            raise HTTPException(status_code=404, detail=f"Unknown capability: {sorted(missing)[0]}")

    await db.execute(delete(PlanCapability).where(PlanCapability.plan_id == plan_id))
    for row in rows:
        db.add(
            PlanCapability(
                id=str(uuid.uuid4()),
                plan_id=plan_id,
                capability_id=row["capability_id"],
                enabled=bool(row.get("enabled", True)),
                credit_cost=row.get("credit_cost"),
                buy_price=float(row.get("buy_price") or 0.0),
                sell_price=float(row.get("sell_price") or 0.0),
            )
        )


async def _ensure_unique_name(
    db: AsyncSession,
    plan_name: str,
    user_type: str,
    exclude_id: Optional[str] = None,
) -> None:
    statement = select(RatePlan.id).where(RatePlan.plan_name == plan_name, RatePlan.user_type == user_type)
    if exclude_id:
        statement = statement.where(RatePlan.id != exclude_id)
    if (await db.execute(statement.limit(1))).scalar_one_or_none():
        raise HTTPException(status_code=409, detail="A plan with this name already exists for this user type.")


async def list_plans(db: AsyncSession, *, include_capabilities: bool = False) -> List[Dict[str, Any]]:
    result = await db.execute(select(RatePlan).order_by(RatePlan.plan_name.asc()))
    plans = result.scalars().all()
    items = []
    for plan in plans:
        capabilities = await _plan_capabilities(db, plan.id) if include_capabilities else None
        items.append(serialize_plan(plan, capabilities))
    return items


async def get_plan(db: AsyncSession, plan_id: str) -> Dict[str, Any]:
    plan = (
        await db.execute(select(RatePlan).where(RatePlan.id == plan_id).execution_options(populate_existing=True))
    ).scalar_one_or_none()
    if plan is None:
        raise HTTPException(status_code=404, detail="Rate plan not found")
    return serialize_plan(plan, await _plan_capabilities(db, plan_id))


async def create_plan(
    db: AsyncSession,
    fields: Dict[str, Any],
    capabilities: Iterable[Dict[str, Any]] = (),
) -> Dict[str, Any]:
    await _ensure_unique_name(db, fields["plan_name"], fields.get("user_type") or "Police")
    plan = RatePlan(id=str(uuid.uuid4()), **{name: fields[name] for name in PLAN_FIELDS if name in fields})
    db.add(plan)
    await db.flush()
    await _replace_capabilities(db, plan.id, capabilities)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A plan with this name already exists for this user type.") from exc
    logger.info("Rate plan %s (%s) created", plan.plan_name, plan.id)
    return await get_plan(db, plan.id)


async def update_plan(
    db: AsyncSession,
    plan_id: str,
    updates: Dict[str, Any],
    capabilities: Optional[Iterable[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Patch plan fields; when ``capabilities`` is given it replaces the plan's capability rows."""
    plan = (await db.execute(select(RatePlan).where(RatePlan.id == plan_id))).scalar_one_or_none()
    if plan is None:
        raise HTTPException(status_code=404, detail="Rate plan not found")

    next_name = updates.get("plan_name") or plan.plan_name
    next_type = updates.get("user_type") or plan.user_type
    if next_name != plan.plan_name or next_type != plan.user_type:
        await _ensure_unique_name(db, next_name, next_type, exclude_id=plan_id)

    for name in PLAN_FIELDS:
        if updates.get(name) is not None:
            setattr(plan, name, updates[name])
    if capabilities is not None:
        await _replace_capabilities(db, plan_id, capabilities)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A plan with this name already exists for this user type.") from exc
    return await get_plan(db, plan_id)


async def delete_plan(db: AsyncSession, plan_id: str) -> None:
    """Remove a plan, its capability rows, and detach officers who were on it."""
    exists = (await db.execute(select(RatePlan.id).where(RatePlan.id == plan_id))).scalar_one_or_none()
    if exists is None:
        raise HTTPException(status_code=404, detail="Rate plan not found")
    await db.execute(
        update(Officer)
        .where(Officer.plan_id == plan_id)
        .values(plan_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(PlanCapability).where(PlanCapability.plan_id == plan_id))
    await db.execute(delete(RatePlan).where(RatePlan.id == plan_id))
    await db.commit()
    logger.info("Rate plan %s deleted", plan_id)
