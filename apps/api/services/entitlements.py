"""Entitlement resolution: officer + capability key -> CapabilityGrant."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.capability import Capability
from models.officer import Officer
from models.rate_plan import PlanCapability
from services.crypto import decrypt_secret
from services.lookups.types import CapabilityGrant, NotEntitled, ResolutionError

logger = logging.getLogger(__name__)


def resolve_cost(capability: Capability, link: PlanCapability) -> int:
    """Plan price wins; an unset plan price falls back to the capability default. FREE is always 0."""
    if str(capability.type or "").upper() == "FREE":
        return 0
    if link.credit_cost is not None:
        return max(int(link.credit_cost), 0)
    return max(int(capability.default_credit_charge or 0), 0)


async def resolve(db: AsyncSession, officer_id: str, capability_key: str) -> CapabilityGrant:
    """
    Resolve whether ``officer_id`` may run ``capability_key`` right now.

    Pure read. Raises NotEntitled with reason ``no_plan``, ``not_enabled`` or
    ``inactive_key``; storage failures surface as ResolutionError.
    """
    key = str(capability_key or "").strip().lower()
    try:
        officer_row = await db.execute(select(Officer.id, Officer.plan_id).where(Officer.id == officer_id))
        officer = officer_row.first()
        if officer is None or not officer.plan_id:
            raise NotEntitled("no_plan")

        result = await db.execute(
            select(Capability, PlanCapability)
            .join(PlanCapability, PlanCapability.capability_id == Capability.id)
            .where(
                PlanCapability.plan_id == officer.plan_id,
                Capability.key == key,
            )
        )
        row = result.first()
    except SQLAlchemyError as exc:
        logger.exception("Entitlement read failed for officer %s capability %s", officer_id, key)
        raise ResolutionError("Unable to read entitlements. Please try again.") from exc

    if row is None:
        raise NotEntitled("not_enabled")
    capability, link = row
    if not link.enabled or str(capability.type or "").upper() == "DISABLED":
        raise NotEntitled("not_enabled")
    if capability.key_status != "Active":
        raise NotEntitled("inactive_key")

    credential = decrypt_secret(capability.api_key_encrypted)
    if not credential:
        logger.warning("Capability %s is Active but has no readable credential", capability.key)
        raise NotEntitled("inactive_key")

    return CapabilityGrant(
        officer_id=officer_id,
        capability_id=capability.id,
        capability_key=capability.key,
        capability_name=capability.name,
        service_provider=capability.service_provider,
        cost=resolve_cost(capability, link),
        credential=credential,
    )


async def list_enabled_capabilities(db: AsyncSession, officer_id: str) -> List[dict]:
    """Capabilities an officer can see on their plan, with price and availability."""
    plan_id = (
        await db.execute(select(Officer.plan_id).where(Officer.id == officer_id))
    ).scalar_one_or_none()
    if not plan_id:
        return []

    result = await db.execute(
        select(Capability, PlanCapability)
        .join(PlanCapability, PlanCapability.capability_id == Capability.id)
        .where(PlanCapability.plan_id == plan_id, PlanCapability.enabled.is_(True))
        .order_by(Capability.name.asc())
    )
    items = []
    for capability, link in result.all():
        if str(capability.type or "").upper() == "DISABLED":
            continue
        items.append(
            {
                "key": capability.key,
                "name": capability.name,
                "service_provider": capability.service_provider,
                "type": capability.type,
                "credit_cost": resolve_cost(capability, link),
                "available": capability.key_status == "Active",
            }
        )
    return items
