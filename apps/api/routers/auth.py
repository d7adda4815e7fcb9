"""
Authentication router: officer and administrator login, and the current session.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from routers.rate_limit import rate_limit
from services.accounts import authenticate_admin, authenticate_officer, get_admin
from services.officers import get_officer
from services.session_token import create_session_token

router = APIRouter()


class OfficerLoginRequest(BaseModel):
    identifier: str = Field(min_length=3, description="Email or mobile number")
    password: str = Field(min_length=1)


class AdminLoginRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class SessionResponse(BaseModel):
    session_token: str
    session_expires_at: int
    role: str
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None


@router.post("/officer/login", response_model=SessionResponse)
async def officer_login(
    request: OfficerLoginRequest,
    _rate_limit: None = Depends(rate_limit("officer_login", limit=10, window_seconds=300)),
    db: AsyncSession = Depends(get_db),
):
    """Exchange officer email/mobile and password for a session token."""
    officer = await authenticate_officer(db, request.identifier, request.password)
    session = create_session_token(officer.id, role="officer", email=officer.email)
    return SessionResponse(
        session_token=session["token"],
        session_expires_at=session["expires_at"],
        role="officer",
        user_id=officer.id,
        name=officer.name,
        email=officer.email,
    )


@router.post("/admin/login", response_model=SessionResponse)
async def admin_login(
    request: AdminLoginRequest,
    _rate_limit: None = Depends(rate_limit("admin_login", limit=10, window_seconds=300)),
    db: AsyncSession = Depends(get_db),
):
    admin = await authenticate_admin(db, request.email, request.password)
    session = create_session_token(admin.id, role="admin", email=admin.email)
    return SessionResponse(
        session_token=session["token"],
        session_expires_at=session["expires_at"],
        role="admin",
        user_id=admin.id,
        name=admin.name,
        email=admin.email,
    )


@router.get("/me")
async def get_current_principal(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Current officer profile and balance, or the administrator identity."""
    if auth.is_admin:
        admin = await get_admin(db, auth.user_id)
        if admin is None:
            raise HTTPException(status_code=404, detail="Administrator not found")
        return {"role": "admin", "user_id": admin.id, "email": admin.email, "name": admin.name}
    officer = await get_officer(db, auth.user_id)
    return {"role": "officer", **officer}
