"""Capability catalogue: vendor credentials, default pricing and key status."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
import uuid

from fastapi import HTTPException
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.capability import Capability
from models.rate_plan import PlanCapability
from services.crypto import decrypt_secret, encrypt_secret, mask_secret
from services.lookups.registry import get_lookup_spec

logger = logging.getLogger(__name__)

CAPABILITY_TYPES = ("FREE", "PRO", "DISABLED")
KEY_STATUSES = ("Active", "Inactive")
EDITABLE_FIELDS = (
    "name",
    "service_provider",
    "type",
    "key_status",
    "default_credit_charge",
    "global_buy_price",
    "global_sell_price",
)


def serialize_capability(capability: Capability) -> Dict[str, Any]:
    spec = get_lookup_spec(capability.key)
    return {
        "id": capability.id,
        "key": capability.key,
        "name": capability.name,
        "service_provider": capability.service_provider,
        "type": capability.type,
        "key_status": capability.key_status,
        "api_key_masked": mask_secret(decrypt_secret(capability.api_key_encrypted)),
        "has_api_key": bool(capability.api_key_encrypted),
        "default_credit_charge": int(capability.default_credit_charge or 0),
        "global_buy_price": float(capability.global_buy_price or 0.0),
        "global_sell_price": float(capability.global_sell_price or 0.0),
        "usage_count": int(capability.usage_count or 0),
        "last_used_at": capability.last_used_at.isoformat() if capability.last_used_at else None,
        "category": spec.category if spec else None,
        "registered": spec is not None,
    }


def _validate(fields: Dict[str, Any]) -> None:
    if fields.get("type") is not None and fields["type"] not in CAPABILITY_TYPES:
        raise HTTPException(status_code=422, detail=f"type must be one of {', '.join(CAPABILITY_TYPES)}")
    if fields.get("key_status") is not None and fields["key_status"] not in KEY_STATUSES:
        raise HTTPException(status_code=422, detail="key_status must be Active or Inactive")


async def _get_or_404(db: AsyncSession, capability_id: str) -> Capability:
    capability = (
        await db.execute(
            select(Capability).where(Capability.id == capability_id).execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if capability is None:
        raise HTTPException(status_code=404, detail="Capability not found")
    return capability


async def list_capabilities(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(select(Capability).order_by(Capability.name.asc()))
    return [serialize_capability(capability) for capability in result.scalars().all()]


async def get_capability(db: AsyncSession, capability_id: str) -> Dict[str, Any]:
    return serialize_capability(await _get_or_404(db, capability_id))


async def create_capability(db: AsyncSession, fields: Dict[str, Any], api_key: Optional[str] = None) -> Dict[str, Any]:
    """Register a capability row for a lookup slug known to the registry."""
    key = str(fields.get("key") or "").strip().lower()
    if get_lookup_spec(key) is None:
        raise HTTPException(status_code=422, detail=f"Unknown capability key: {key}")
    _validate(fields)
    existing = await db.execute(
        select(Capability.id).where((Capability.key == key) | (Capability.name == fields["name"])).limit(1)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="A capability with this key or name already exists.")

    capability = Capability(
        id=str(uuid.uuid4()),
        key=key,
        api_key_encrypted=encrypt_secret(api_key) if api_key else None,
        **{name: fields[name] for name in EDITABLE_FIELDS if fields.get(name) is not None},
    )
    db.add(capability)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A capability with this key or name already exists.") from exc
    logger.info("Capability %s registered", key)
    return await get_capability(db, capability.id)


async def update_capability(
    db: AsyncSession,
    capability_id: str,
    updates: Dict[str, Any],
    api_key: Optional[str] = None,
) -> Dict[str, Any]:
    """Patch capability fields. A non-empty ``api_key`` rotates the stored credential."""
    _validate(updates)
    capability = await _get_or_404(db, capability_id)
    for name in EDITABLE_FIELDS:
        if updates.get(name) is not None:
            setattr(capability, name, updates[name])
    if api_key:
        capability.api_key_encrypted = encrypt_secret(api_key)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(status_code=409, detail="A capability with this name already exists.") from exc
    return await get_capability(db, capability_id)


async def toggle_key_status(db: AsyncSession, capability_id: str) -> Dict[str, Any]:
    capability = await _get_or_404(db, capability_id)
    capability.key_status = "Inactive" if capability.key_status == "Active" else "Active"
    await db.commit()
    logger.info("Capability %s key status set to %s", capability.key, capability.key_status)
    return await get_capability(db, capability_id)


async def delete_capability(db: AsyncSession, capability_id: str) -> None:
    await _get_or_404(db, capability_id)
    await db.execute(delete(PlanCapability).where(PlanCapability.capability_id == capability_id))
    await db.execute(delete(Capability).where(Capability.id == capability_id))
    await db.commit()
