"""Credits router: officer balance and administrator adjustments."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, ensure_officer_scope, get_auth_context, require_admin
from routers.rate_limit import rate_limit
from services.ledger import CREDIT_ACTIONS, adjust_credits, get_credit_summary, list_transactions

router = APIRouter()
logger = logging.getLogger(__name__)


class CreditAdjustmentRequest(BaseModel):
    officer_id: str
    action: str = Field(description=" / ".join(CREDIT_ACTIONS))
    credits: int = Field(ge=1, le=1_000_000)
    payment_mode: Optional[str] = Field(default=None, max_length=50)
    remarks: Optional[str] = Field(default=None, max_length=500)


@router.get("")
async def credits_summary(
    officer_id: Optional[str] = Query(default=None),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Balance and recent ledger entries for the session officer (or any officer, for admins)."""
    scoped_officer_id = ensure_officer_scope(auth, officer_id)
    return await get_credit_summary(scoped_officer_id, db)


@router.get("/transactions")
async def credit_transactions(
    officer_id: Optional[str] = Query(default=None),
    action: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    if not auth.is_admin:
        officer_id = ensure_officer_scope(auth, officer_id)
    items = await list_transactions(db, officer_id=officer_id, action=action, limit=limit, offset=offset)
    return {"items": items}


@router.post("/adjustments", status_code=201)
async def create_adjustment(
    request: CreditAdjustmentRequest,
    _rate_limit: None = Depends(rate_limit("credit_adjustment", limit=120, window_seconds=3600)),
    admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Renewal, Top-up, Refund or manual Deduction."""
    result = await adjust_credits(
        db,
        request.officer_id,
        action=request.action,
        credits=request.credits,
        payment_mode=request.payment_mode,
        remarks=request.remarks,
        created_by=admin.email or admin.user_id,
    )
    return {"ok": True, **result}
