"""Redis-backed fixed-window rate limiting dependency with an in-process fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request
import redis.asyncio as redis
from redis.exceptions import RedisError

from config import settings
from services.session_token import decode_session_token

logger = logging.getLogger(__name__)

_local_windows: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


def reset_local_windows() -> None:
    _local_windows.clear()


def _principal(request: Request) -> str:
    """Key by session subject when a valid token is present, else by client address."""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            payload = decode_session_token(token.strip())
            return f"{payload.get('role')}:{payload.get('sub')}"
        except ValueError:
            pass
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return "ip:unknown"


async def _take_local(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    async with _local_lock:
        for stale in [name for name, (_, end) in _local_windows.items() if end <= now]:
            del _local_windows[stale]
        count, window_end = _local_windows.get(key, (0, now + window_seconds))
        if now >= window_end:
            count, window_end = 0, now + window_seconds
        count += 1
        _local_windows[key] = (count, window_end)
        return count <= limit


async def _take_redis(key: str, limit: int, window_seconds: int) -> bool:
    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        count = await client.incr(key)
        if count == 1:
            await client.expire(key, window_seconds)
    finally:
        await client.aclose()
    return int(count) <= limit


def rate_limit(scope: str, limit: int, window_seconds: int) -> Callable[[Request], None]:
    """Return a FastAPI dependency allowing ``limit`` calls per principal per window."""

    async def _dependency(request: Request):
        if not settings.RATE_LIMITS_ENABLED or getattr(request.app.state, "disable_rate_limits", False):
            return

        key = f"portal:rate:{scope}:{_principal(request)}"
        try:
            allowed = await _take_redis(key, limit, window_seconds)
        except (RedisError, OSError) as exc:
            logger.debug("Rate limiter falling back to local window for %s: %s", scope, exc)
            allowed = await _take_local(key, limit, window_seconds)

        if not allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Too many {scope.replace('_', ' ')} requests. Try again later.",
            )

    return _dependency
