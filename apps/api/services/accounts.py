"""Login checks for officers and administrators, plus the bootstrap admin."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Optional
import uuid

from fastapi import HTTPException
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.admin_user import AdminUser
from models.officer import Officer
from services.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)

INVALID_LOGIN = "Invalid credentials."


async def authenticate_officer(db: AsyncSession, identifier: str, password: str) -> Officer:
    """Match an officer by email or mobile and check the password."""
    value = str(identifier or "").strip()
    digits = "".join(ch for ch in value if ch.isdigit())
    clauses = [Officer.email == value.lower()]
    if len(digits) >= 10:
        clauses.append(Officer.mobile == digits[-10:])
    officer = (await db.execute(select(Officer).where(or_(*clauses)).limit(1))).scalar_one_or_none()
    if officer is None or not verify_password(password, officer.password_hash):
        raise HTTPException(status_code=401, detail=INVALID_LOGIN)
    if officer.status != "Active":
        raise HTTPException(status_code=403, detail="Account is suspended. Please contact admin.")

    await db.execute(
        update(Officer)
        .where(Officer.id == officer.id)
        .values(last_active_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return officer


async def authenticate_admin(db: AsyncSession, email: str, password: str) -> AdminUser:
    admin = (
        await db.execute(select(AdminUser).where(AdminUser.email == str(email or "").strip().lower()))
    ).scalar_one_or_none()
    if admin is None or not admin.is_active or not verify_password(password, admin.password_hash):
        raise HTTPException(status_code=401, detail=INVALID_LOGIN)
    return admin


async def get_admin(db: AsyncSession, admin_id: str) -> Optional[AdminUser]:
    return (await db.execute(select(AdminUser).where(AdminUser.id == admin_id))).scalar_one_or_none()


async def ensure_bootstrap_admin(db: AsyncSession) -> bool:
    """Create the configured administrator when it does not exist yet."""
    email = (settings.BOOTSTRAP_ADMIN_EMAIL or "").strip().lower()
    password = settings.BOOTSTRAP_ADMIN_PASSWORD or ""
    if not email or not password:
        return False
    existing = await db.execute(select(AdminUser.id).where(AdminUser.email == email))
    if existing.scalar_one_or_none():
        return False
    db.add(
        AdminUser(
            id=str(uuid.uuid4()),
            email=email,
            name=settings.BOOTSTRAP_ADMIN_NAME,
            password_hash=hash_password(password),
            is_active=True,
        )
    )
    await db.commit()
    logger.info("Bootstrap administrator %s created", email)
    return True
