"""
Health check endpoints.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from database import engine

router = APIRouter()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "up"
    except (SQLAlchemyError, OSError) as exc:
        return f"down: {exc.__class__.__name__}"


async def _redis_status() -> str:
    client = redis.from_url(settings.REDIS_URL)
    try:
        await client.ping()
        return "up"
    except (RedisError, OSError) as exc:
        return f"down: {exc.__class__.__name__}"
    finally:
        await client.aclose()


@router.get("/health")
async def health_check():
    """
    Overall system health.

    Redis only backs rate limiting, so a Redis outage degrades the service
    but does not take it down.
    """
    database = await _database_status()
    cache = await _redis_status()
    status = "healthy"
    if database != "up":
        status = "unhealthy"
    elif cache != "up":
        status = "degraded"
    return {
        "status": status,
        "api": "up",
        "database": database,
        "redis": cache,
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    database = await _database_status()
    if database != "up":
        return JSONResponse(status_code=503, content={"ready": False, "database": database})
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
