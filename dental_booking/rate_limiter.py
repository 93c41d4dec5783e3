"""
Fixed-window rate limiting for public submissions.

Counters live in memory behind a lock, so the check-and-increment for one
client is atomic across concurrent requests. When a Redis client is given,
counters are mirrored to Redis periodically so that several workers start
from a shared view after a restart.
"""

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

import redis
from fastapi import Request, Response

from .errors import RateLimitExceededError

logger = logging.getLogger(__name__)

# Sync to Redis at most every 10 seconds per key
REDIS_SYNC_INTERVAL = 10
# Clean up expired entries every 60 seconds
CLEANUP_INTERVAL = 60


@dataclass
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after: int


def get_redis_client(redis_url: str) -> redis.Redis:
    """Create a Redis client for counter mirroring and test the connection"""
    if "@" in redis_url:
        url_parts = redis_url.split("@")
        protocol = url_parts[0].split(":")[0]
        masked_url = f"{protocol}:****@{url_parts[1]}"
    else:
        masked_url = redis_url
    logger.info(f"📡 Using Redis URL connection: {masked_url}")

    client = redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
    )
    client.ping()
    logger.info("Redis connected successfully via URL")
    return client


class RateLimiter:
    """Per-key request counter over a fixed window"""

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        key_prefix: str = "rate_limit",
        redis_client: Optional[redis.Redis] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self.redis_client = redis_client
        self.clock = clock
        # {key: {"count": int, "reset_time": float, "last_redis_sync": float}}
        self._entries: dict[str, dict] = {}
        self._lock = Lock()
        self._last_cleanup = 0.0

    def hit(self, client_key: str) -> RateLimitDecision:
        """Count one request for client_key and decide whether it may proceed"""
        key = f"{self.key_prefix}:{client_key}"
        now = self.clock()

        with self._lock:
            self._cleanup(now)

            entry = self._entries.get(key)
            if entry is None:
                entry = self._load(key, now)
                self._entries[key] = entry

            if now >= entry["reset_time"]:
                entry["count"] = 0
                entry["reset_time"] = now + self.window_seconds
                entry["last_redis_sync"] = 0

            allowed = entry["count"] < self.limit
            if allowed:
                entry["count"] += 1

            if self.redis_client is not None and now - entry["last_redis_sync"] >= REDIS_SYNC_INTERVAL:
                self._store(key, entry, now)

            retry_after = max(0, int(entry["reset_time"] - now + 0.999))
            return RateLimitDecision(allowed, entry["count"], retry_after)

    def reset(self, client_key: Optional[str] = None) -> None:
        with self._lock:
            if client_key is None:
                self._entries.clear()
            else:
                self._entries.pop(f"{self.key_prefix}:{client_key}", None)

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL:
            return
        expired = [k for k, v in self._entries.items() if now >= v["reset_time"]]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"🧹 Cleaned up {len(expired)} expired rate limit entries")
        self._last_cleanup = now

    def _load(self, key: str, now: float) -> dict:
        entry = {"count": 0, "reset_time": now + self.window_seconds, "last_redis_sync": now}
        if self.redis_client is None:
            return entry

        try:
            redis_count = self.redis_client.get(key)
            redis_ttl = self.redis_client.ttl(key)
            if redis_count and redis_ttl > 0:
                entry["count"] = int(redis_count)
                entry["reset_time"] = now + redis_ttl
        except redis.RedisError as e:
            logger.warning(f"⚠️ Failed to load from Redis, using memory only: {e}")
        return entry

    def _store(self, key: str, entry: dict, now: float) -> None:
        ttl = max(1, int(entry["reset_time"] - now))
        try:
            self.redis_client.set(key, entry["count"], ex=ttl)
            entry["last_redis_sync"] = now
        except redis.RedisError as e:
            logger.warning(f"⚠️ Failed to sync to Redis: {e}")


def get_client_ip(request: Request, trusted_hops: Optional[int] = None) -> str:
    """
    Client address used to key rate limits.

    X-Forwarded-For is only read when the app sits behind trusted proxies.
    Each of them appends the address it saw, so the client is the entry
    ``trusted_hops`` places from the right; anything further left was
    written by the caller.
    """
    if trusted_hops is None:
        settings = getattr(request.app.state, "settings", None)
        trusted_hops = settings.trusted_proxy_hops if settings is not None else 0

    if trusted_hops > 0:
        forwarded = request.headers.get("X-Forwarded-For", "")
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            return hops[-min(trusted_hops, len(hops))]

    return request.client.host if request.client else "unknown"


async def enforce_submission_rate_limit(request: Request, response: Response) -> None:
    """
    FastAPI dependency for the public intake route.

    Uses the limiter installed on ``app.state.rate_limiter``; does nothing when
    rate limiting is disabled.
    """
    limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return

    client_ip = get_client_ip(request)
    decision = limiter.hit(client_ip)
    if not decision.allowed:
        logger.warning(
            f"🚫 Rate limit EXCEEDED for {client_ip} - {decision.count}/{limiter.limit} requests used"
        )
        raise RateLimitExceededError(decision.retry_after)

    response.headers["X-RateLimit-Limit"] = str(limiter.limit)
    response.headers["X-RateLimit-Remaining"] = str(limiter.limit - decision.count)
