"""Administrator routes for officer accounts."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, require_admin
from services.officers import (
    create_officer,
    delete_officer,
    get_officer,
    list_officers,
    set_officer_status,
    update_officer,
)

router = APIRouter()


class OfficerCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    mobile: str = Field(min_length=10, max_length=20)
    password: str = Field(min_length=8, max_length=200)
    plan_id: Optional[str] = None
    telegram_id: Optional[str] = None
    department: Optional[str] = None
    rank: Optional[str] = None
    badge_number: Optional[str] = None
    station: Optional[str] = None


class OfficerUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, min_length=3, max_length=320)
    mobile: Optional[str] = Field(default=None, min_length=10, max_length=20)
    password: Optional[str] = Field(default=None, min_length=8, max_length=200)
    plan_id: Optional[str] = None
    status: Optional[str] = None
    telegram_id: Optional[str] = None
    department: Optional[str] = None
    rank: Optional[str] = None
    badge_number: Optional[str] = None
    station: Optional[str] = None


class OfficerStatusRequest(BaseModel):
    status: str


@router.get("")
async def officers_index(
    status: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"items": await list_officers(db, status=status, search=search, limit=limit, offset=offset)}


@router.post("", status_code=201)
async def officers_create(
    request: OfficerCreateRequest,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    fields = request.model_dump(exclude={"password", "plan_id"})
    return await create_officer(
        db,
        fields,
        password=request.password,
        plan_id=request.plan_id,
        created_by=admin.email or admin.user_id,
    )


@router.get("/{officer_id}")
async def officers_show(
    officer_id: str,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_officer(db, officer_id)


@router.patch("/{officer_id}")
async def officers_update(
    officer_id: str,
    request: OfficerUpdateRequest,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await update_officer(
        db,
        officer_id,
        request.model_dump(exclude_unset=True),
        updated_by=admin.email or admin.user_id,
    )


@router.post("/{officer_id}/status")
async def officers_set_status(
    officer_id: str,
    request: OfficerStatusRequest,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Suspend or reactivate an officer."""
    return await set_officer_status(db, officer_id, request.status)


@router.delete("/{officer_id}", status_code=204)
async def officers_delete(
    officer_id: str,
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await delete_officer(db, officer_id)
    return Response(status_code=204)
