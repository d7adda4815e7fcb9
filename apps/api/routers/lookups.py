"""Officer lookup routes: enabled capabilities and metered lookups."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, require_officer
from routers.rate_limit import rate_limit
from services.entitlements import list_enabled_capabilities
from services.lookup_workflow import run_lookup
from services.lookups.types import (
    InsufficientCredits,
    InvalidLookupRequest,
    LedgerWriteError,
    NotEntitled,
    ResolutionError,
    VendorFailure,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _vendor_client(request: Request) -> Optional[httpx.AsyncClient]:
    """Shared client from app state when the lifespan created one."""
    return getattr(request.app.state, "vendor_client", None)


@router.get("/capabilities")
async def enabled_capabilities(
    auth: AuthContext = Depends(require_officer),
    db: AsyncSession = Depends(get_db),
):
    return {"items": await list_enabled_capabilities(db, auth.user_id)}


@router.post("/{capability_key}")
async def perform_lookup(
    capability_key: str,
    request: Request,
    payload: Dict[str, Any] = Body(default={}),
    _rate_limit: None = Depends(rate_limit("lookup", limit=60, window_seconds=60)),
    auth: AuthContext = Depends(require_officer),
    db: AsyncSession = Depends(get_db),
):
    """
    Run one credit-metered lookup.

    403 not entitled, 402 insufficient credits, 422 invalid input,
    502 vendor failure, 409 charge not recorded, 503 entitlement store unavailable.
    """
    try:
        return await run_lookup(db, auth.user_id, capability_key, payload, client=_vendor_client(request))
    except InvalidLookupRequest as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NotEntitled as exc:
        raise HTTPException(status_code=403, detail={"code": exc.reason, "message": exc.message}) from exc
    except InsufficientCredits as exc:
        raise HTTPException(
            status_code=402,
            detail={"code": exc.code, "message": exc.message, "required": exc.required, "available": exc.available},
        ) from exc
    except VendorFailure as exc:
        raise HTTPException(
            status_code=502,
            detail={"code": exc.code, "message": "Lookup failed. No credits were deducted.", "query_id": exc.query_id},
        ) from exc
    except LedgerWriteError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": exc.code, "message": exc.message, "query_id": exc.query_id},
        ) from exc
    except ResolutionError as exc:
        raise HTTPException(status_code=503, detail={"code": exc.code, "message": exc.message}) from exc
