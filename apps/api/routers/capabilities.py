"""Administrator routes for the capability catalogue and vendor credentials."""

from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, require_admin
from services.capabilities import (
    create_capability,
    delete_capability,
    get_capability,
    list_capabilities,
    toggle_key_status,
    update_capability,
)
from services.lookups.registry import list_lookup_specs

router = APIRouter()


class CapabilityCreateRequest(BaseModel):
    key: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)
    service_provider: Optional[str] = None
    type: str = "PRO"
    key_status: str = "Inactive"
    api_key: Optional[str] = Field(default=None, max_length=2000)
    default_credit_charge: int = Field(default=1, ge=0)
    global_buy_price: float = Field(default=0.0, ge=0)
    global_sell_price: float = Field(default=0.0, ge=0)


class CapabilityUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    service_provider: Optional[str] = None
    type: Optional[str] = None
    key_status: Optional[str] = None
    api_key: Optional[str] = Field(default=None, max_length=2000)
    default_credit_charge: Optional[int] = Field(default=None, ge=0)
    global_buy_price: Optional[float] = Field(default=None, ge=0)
    global_sell_price: Optional[float] = Field(default=None, ge=0)


@router.get("")
async def capabilities_index(
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"items": await list_capabilities(db)}


@router.get("/registry")
async def capabilities_registry(_admin: AuthContext = Depends(require_admin)):
    """Lookup slugs this build can serve, for wiring new capability rows."""
    return {
        "items": [
            {
                "key": spec.key,
                "name": spec.name,
                "category": spec.category,
                "source": spec.source,
                "type": spec.query_type,
            }
            for spec in list_lookup_specs()
        ]
    }


@router.post("", status_code=201)
async def capabilities_create(
    request: CapabilityCreateRequest,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await create_capability(db, request.model_dump(exclude={"api_key"}), api_key=request.api_key)


@router.get("/{capability_id}")
async def capabilities_show(
    capability_id: str,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_capability(db, capability_id)


@router.patch("/{capability_id}")
async def capabilities_update(
    capability_id: str,
    request: CapabilityUpdateRequest,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await update_capability(
        db,
        capability_id,
        request.model_dump(exclude={"api_key"}, exclude_unset=True),
        api_key=request.api_key,
    )


@router.post("/{capability_id}/toggle")
async def capabilities_toggle(
    capability_id: str,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Flip the credential between Active and Inactive."""
    return await toggle_key_status(db, capability_id)


@router.delete("/{capability_id}", status_code=204)
async def capabilities_delete(
    capability_id: str,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await delete_capability(db, capability_id)
    return Response(status_code=204)
