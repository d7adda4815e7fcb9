"""Registration routes: public submission and administrator review."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, require_admin
from routers.rate_limit import rate_limit
from services.registrations import (
    RegistrationStateError,
    approve,
    list_registrations,
    reject,
    submit_registration,
)

router = APIRouter()


class RegistrationRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    mobile: str = Field(min_length=10, max_length=20)
    station: str = Field(min_length=1, max_length=200)
    department: Optional[str] = None
    rank: Optional[str] = None
    badge_number: Optional[str] = None
    additional_info: Optional[str] = Field(default=None, max_length=2000)


class ApproveRequest(BaseModel):
    plan_id: str
    initial_password: str = Field(min_length=8, max_length=200)


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


@router.post("", status_code=201)
async def registrations_submit(
    request: RegistrationRequest,
    _rate_limit: None = Depends(rate_limit("registration", limit=5, window_seconds=3600)),
    db: AsyncSession = Depends(get_db),
):
    """Public officer application. It waits as ``pending`` until an administrator reviews it."""
    return await submit_registration(db, request.model_dump())


@router.get("")
async def registrations_index(
    status: Optional[str] = Query(default=None, pattern="^(pending|approved|rejected)$"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return {"items": await list_registrations(db, status=status, limit=limit, offset=offset)}


@router.post("/{registration_id}/approve")
async def registrations_approve(
    registration_id: str,
    request: ApproveRequest,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await approve(
            db,
            registration_id,
            plan_id=request.plan_id,
            initial_password=request.initial_password,
            approved_by=admin.email or admin.user_id,
        )
    except RegistrationStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/{registration_id}/reject")
async def registrations_reject(
    registration_id: str,
    request: RejectRequest,
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await reject(
            db,
            registration_id,
            reason=request.reason,
            rejected_by=admin.email or admin.user_id,
        )
    except RegistrationStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
