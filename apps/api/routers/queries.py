"""Query history and dashboard routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from routers.auth_scope import AuthContext, get_auth_context, require_admin
from services.queries import dashboard_stats, get_query, list_queries, serialize_query

router = APIRouter()


@router.get("/queries")
async def queries_index(
    officer_id: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Officers see their own history without raw vendor payloads; admins see everything."""
    if not auth.is_admin:
        if officer_id and officer_id != auth.user_id:
            raise HTTPException(status_code=403, detail="officer_id does not match authenticated session.")
        officer_id = auth.user_id
    items = await list_queries(
        db,
        officer_id=officer_id,
        status=status,
        category=category,
        include_full_result=auth.is_admin,
        limit=limit or settings.DEFAULT_QUERY_PAGE_SIZE,
        offset=offset,
    )
    return {"items": items}


@router.get("/queries/{query_id}")
async def queries_show(
    query_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    entry = await get_query(db, query_id)
    if entry is None or (not auth.is_admin and entry.officer_id != auth.user_id):
        raise HTTPException(status_code=404, detail="Query not found")
    return serialize_query(entry, include_full_result=auth.is_admin)


@router.get("/dashboard/stats")
async def dashboard(
    _admin: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_stats(db)
