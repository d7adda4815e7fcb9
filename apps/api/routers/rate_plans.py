"""Administrator routes for rate plans."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, require_admin
from services.rate_plans import create_plan, delete_plan, get_plan, list_plans, update_plan

router = APIRouter()


class PlanCapabilitySetting(BaseModel):
    capability_id: str
    enabled: bool = True
    credit_cost: Optional[int] = Field(default=None, ge=0)
    buy_price: float = Field(default=0.0, ge=0)
    sell_price: float = Field(default=0.0, ge=0)


class RatePlanCreateRequest(BaseModel):
    plan_name: str = Field(min_length=1, max_length=120)
    user_type: str = Field(default="Police", pattern="^(Police|Private|Custom)$")
    monthly_fee: float = Field(default=0.0, ge=0)
    default_credits: int = Field(default=0, ge=0)
    renewal_required: bool = True
    topup_allowed: bool = True
    status: str = Field(default="Active", pattern="^(Active|Inactive)$")
    capabilities: List[PlanCapabilitySetting] = Field(default_factory=list)


class RatePlanUpdateRequest(BaseModel):
    plan_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    user_type: Optional[str] = Field(default=None, pattern="^(Police|Private|Custom)$")
    monthly_fee: Optional[float] = Field(default=None, ge=0)
    default_credits: Optional[int] = Field(default=None, ge=0)
    renewal_required: Optional[bool] = None
    topup_allowed: Optional[bool] = None
    status: Optional[str] = Field(default=None, pattern="^(Active|Inactive)$")
    capabilities: Optional[List[PlanCapabilitySetting]] = None


@router.get("")
async def plans_index(
    include_capabilities: bool = Query(default=False),
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"items": await list_plans(db, include_capabilities=include_capabilities)}


@router.post("", status_code=201)
async def plans_create(
    request: RatePlanCreateRequest,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await create_plan(
        db,
        request.model_dump(exclude={"capabilities"}),
        [item.model_dump() for item in request.capabilities],
    )


@router.get("/{plan_id}")
async def plans_show(
    plan_id: str,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_plan(db, plan_id)


@router.patch("/{plan_id}")
async def plans_update(
    plan_id: str,
    request: RatePlanUpdateRequest,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Patch a plan. A supplied ``capabilities`` list replaces the plan's capability rows."""
    capabilities = None
    if request.capabilities is not None:
        capabilities = [item.model_dump() for item in request.capabilities]
    return await update_plan(
        db,
        plan_id,
        request.model_dump(exclude={"capabilities"}, exclude_unset=True),
        capabilities,
    )


@router.delete("/{plan_id}", status_code=204)
async def plans_delete(
    plan_id: str,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await delete_plan(db, plan_id)
    return Response(status_code=204)
