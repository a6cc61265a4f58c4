"""
Rate limiting for the login, registration and OTP endpoints.
Counts live in process memory and are mirrored to Redis at intervals so that
several workers converge on the same window.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_ENABLED

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# {key: {"count": int, "reset_time": int, "last_redis_sync": int}}
memory_windows: dict[str, dict] = {}
windows_lock = Lock()

REDIS_SYNC_INTERVAL = 10
CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def get_redis_client() -> redis.Redis:
    """
    Get or create the shared Redis client.
    REDIS_URL wins over the individual REDIS_HOST/PORT/... settings.
    """
    global redis_client

    if redis_client is not None:
        return redis_client

    redis_url = os.getenv("REDIS_URL")
    try:
        if redis_url:
            masked = redis_url.split("@")[-1] if "@" in redis_url else "****"
            logger.info(f"📡 Connecting to Redis via URL: {masked}")
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=10,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        else:
            redis_host = os.getenv("REDIS_HOST", "localhost")
            redis_port = int(os.getenv("REDIS_PORT", "6379"))
            redis_ssl = os.getenv("REDIS_SSL", "false").lower() == "true"
            logger.info(f"📡 Connecting to Redis at {redis_host}:{redis_port} (ssl={redis_ssl})")
            client = redis.Redis(
                host=redis_host,
                port=redis_port,
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=redis_ssl,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=10,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        client.ping()
    except Exception as e:
        logger.error(f"❌ Failed to connect to Redis: {e}")
        raise

    logger.info("✅ Redis connected")
    redis_client = client
    return redis_client


def _cleanup_expired_windows(now: int) -> None:
    global last_cleanup_time

    if now - last_cleanup_time < CLEANUP_INTERVAL:
        return

    expired = [k for k, v in memory_windows.items() if now >= v.get("reset_time", 0)]
    for k in expired:
        del memory_windows[k]
    if expired:
        logger.debug(f"🧹 Dropped {len(expired)} expired rate limit windows")
    last_cleanup_time = now


def _load_window(key: str, window_seconds: int, now: int, client: Optional[redis.Redis]) -> dict:
    """Seed a fresh window, picking up the count another worker may have synced"""
    if client is not None:
        try:
            stored = client.get(key)
            ttl = client.ttl(key)
            if stored and ttl > 0:
                return {"count": int(stored), "reset_time": now + ttl, "last_redis_sync": now}
        except Exception as e:
            logger.warning(f"⚠️ Could not read rate limit window from Redis: {e}")
    return {"count": 0, "reset_time": now + window_seconds, "last_redis_sync": now}


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """
    Count one request against a fixed window.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    now = int(time.time())

    with windows_lock:
        _cleanup_expired_windows(now)

        window = memory_windows.get(key)
        if window is None:
            window = _load_window(key, window_seconds, now, client)
            memory_windows[key] = window

        if now >= window["reset_time"]:
            window.update(count=0, reset_time=now + window_seconds, last_redis_sync=0)

        is_allowed = window["count"] < limit
        if is_allowed:
            window["count"] += 1

        if client is not None and now - window["last_redis_sync"] >= REDIS_SYNC_INTERVAL:
            try:
                client.set(key, window["count"], ex=window_seconds)
                window["last_redis_sync"] = now
            except Exception as e:
                logger.warning(f"⚠️ Failed to sync rate limit window to Redis: {e}")

        return is_allowed, window["count"], max(0, window["reset_time"] - now)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request, limit: int, window_seconds: int, key_prefix: str = "rate_limit"
):
    """Enforce a per-IP limit; Redis being down degrades to per-process counting"""
    if not RATE_LIMIT_ENABLED:
        return

    try:
        client = get_redis_client()
    except Exception:
        client = None

    key = f"{key_prefix}:{client_ip(request)}"
    try:
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)
    except Exception as e:
        logger.error(f"❌ Rate limit check failed for {key}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit}")
        raise HTTPException(
            status_code=429,
            detail=f"Too many requests. Please try again in {ttl} seconds.",
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        @router.post("/login", dependencies=[Depends(login_rate_limit)])
        async def login(...):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix)

    return rate_limiter


login_rate_limit = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")
register_rate_limit = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")
otp_rate_limit = create_rate_limiter(limit=5, window_seconds=600, key_prefix="otp")
