"""Query history and dashboard aggregates."""

from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.officer import Officer
from models.query_log import QueryLog


def serialize_query(entry: QueryLog, include_full_result: bool = False) -> Dict[str, Any]:
    payload = {
        "id": entry.id,
        "officer_id": entry.officer_id,
        "officer_name": entry.officer_name,
        "type": entry.type,
        "capability_key": entry.capability_key,
        "category": entry.category,
        "input_data": entry.input_data,
        "source": entry.source,
        "result_summary": entry.result_summary,
        "credits_used": int(entry.credits_used or 0),
        "status": entry.status,
        "error_code": entry.error_code,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }
    if include_full_result:
        payload["full_result"] = entry.full_result
    return payload


async def list_queries(
    db: AsyncSession,
    *,
    officer_id: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    include_full_result: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    statement = select(QueryLog)
    if officer_id:
        statement = statement.where(QueryLog.officer_id == officer_id)
    if status:
        statement = statement.where(QueryLog.status == status)
    if category:
        statement = statement.where(QueryLog.category == category)
    statement = statement.order_by(QueryLog.created_at.desc(), QueryLog.id.desc()).limit(limit).offset(offset)
    result = await db.execute(statement)
    return [serialize_query(entry, include_full_result) for entry in result.scalars().all()]


async def get_query(db: AsyncSession, query_id: str) -> Optional[QueryLog]:
    return (await db.execute(select(QueryLog).where(QueryLog.id == query_id))).scalar_one_or_none()


async def dashboard_stats(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    current = now or datetime.now(timezone.utc)
    start_of_day = datetime.combine(current.date(), time.min, tzinfo=timezone.utc)

    officer_counts = (
        await db.execute(
            select(
                func.count(Officer.id),
                func.coalesce(func.sum(case((Officer.status == "Active", 1), else_=0)), 0),
            )
        )
    ).one()
    query_counts = (
        await db.execute(
            select(QueryLog.status, func.count(QueryLog.id), func.coalesce(func.sum(QueryLog.credits_used), 0)).group_by(
                QueryLog.status
            )
        )
    ).all()
    queries_today = (
        await db.execute(select(func.count(QueryLog.id)).where(QueryLog.created_at >= start_of_day))
    ).scalar()

    by_status = {status: int(count or 0) for status, count, _ in query_counts}
    return {
        "total_officers": int(officer_counts[0] or 0),
        "active_officers": int(officer_counts[1] or 0),
        "total_queries": sum(by_status.values()),
        "queries_today": int(queries_today or 0),
        "successful_queries": by_status.get("Success", 0),
        "failed_queries": by_status.get("Failed", 0),
        "rejected_queries": by_status.get("Rejected", 0),
        "total_credits_used": sum(int(used or 0) for _, _, used in query_counts),
    }
