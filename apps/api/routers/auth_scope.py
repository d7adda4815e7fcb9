"""Authentication dependencies for officer and administrator sessions."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.officer import Officer
from services.session_token import decode_session_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    user_id: str
    role: str
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def ensure_officer_scope(auth: AuthContext, supplied_officer_id: Optional[str]) -> str:
    """Return the officer id a request may act on and reject cross-officer attempts."""
    if auth.is_admin:
        if not supplied_officer_id:
            raise HTTPException(status_code=422, detail="officer_id is required for admin sessions.")
        return supplied_officer_id
    if supplied_officer_id and supplied_officer_id != auth.user_id:
        raise HTTPException(status_code=403, detail="officer_id does not match authenticated session.")
    return auth.user_id


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> AuthContext:
    """Resolve the authenticated principal from a Bearer session token."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing Bearer session token.")

    try:
        payload = decode_session_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    return AuthContext(
        user_id=str(payload.get("sub", "")),
        role=str(payload.get("role", "")),
        email=str(payload.get("email", "")) or None,
    )


async def require_officer(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Officer session whose account still exists and is not suspended."""
    if auth.role != "officer":
        raise HTTPException(status_code=403, detail="Officer session required.")
    status = (await db.execute(select(Officer.status).where(Officer.id == auth.user_id))).scalar_one_or_none()
    if status is None:
        raise HTTPException(status_code=401, detail="Officer account no longer exists.")
    if status != "Active":
        raise HTTPException(status_code=403, detail="Account is suspended. Please contact admin.")
    return auth


async def require_admin(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Administrator session required.")
    return auth
