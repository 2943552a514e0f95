"""Fixed-window request throttling backed by a shared redis counter.

Each window is one redis key: the first hit creates it with a PX expiry and
every hit INCRs it, so counts are shared by all API replicas and stale
windows disappear on their own. When redis cannot be reached the limiter
lets the request through and logs a warning.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

import redis
from fastapi import Request, Response

from ..config import get_settings

logger = logging.getLogger(__name__)

KEY_NAMESPACE = "swiftfit:rl"


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    limit: int
    window_s: float


RATE_LIMITS: dict[str, RateLimitConfig] = {
    "BOOKING_CREATE": RateLimitConfig(limit=10, window_s=60 * 60),
    "BOOKING_CANCEL": RateLimitConfig(limit=5, window_s=60 * 60),
    "PAYMENT_CREATE": RateLimitConfig(limit=3, window_s=15 * 60),
    "LOGIN": RateLimitConfig(limit=5, window_s=15 * 60),
    "REGISTER": RateLimitConfig(limit=3, window_s=60 * 60),
    "API_GENERAL": RateLimitConfig(limit=100, window_s=15 * 60),
}


@dataclass(slots=True)
class Decision:
    allowed: bool
    limit: int
    remaining: int
    reset_epoch_s: float
    retry_after_s: float


class RateLimiter:
    def __init__(
        self,
        client: redis.Redis,
        namespace: str = KEY_NAMESPACE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._namespace = namespace
        self._clock = clock

    def hit(self, key: str, config: RateLimitConfig) -> Decision:
        now = self._clock()
        window_ms = int(config.window_s * 1000)
        redis_key = f"{self._namespace}:{key}"
        try:
            with self._client.pipeline() as pipe:
                pipe.set(redis_key, 0, nx=True, px=window_ms)
                pipe.incr(redis_key)
                pipe.pttl(redis_key)
                _, count, ttl_ms = pipe.execute()
            # a key left without expiry would never reset
            if ttl_ms is None or int(ttl_ms) < 0:
                self._client.pexpire(redis_key, window_ms)
                ttl_ms = window_ms
        except redis.RedisError:
            logger.warning("Rate limit store unavailable, allowing request", exc_info=True, extra={"key": key})
            return Decision(
                allowed=True,
                limit=config.limit,
                remaining=config.limit,
                reset_epoch_s=now + config.window_s,
                retry_after_s=0.0,
            )

        count = int(count)
        ttl_s = int(ttl_ms) / 1000
        reset_at = now + ttl_s
        if count > config.limit:
            return Decision(
                allowed=False,
                limit=config.limit,
                remaining=0,
                reset_epoch_s=reset_at,
                retry_after_s=ttl_s,
            )
        return Decision(
            allowed=True,
            limit=config.limit,
            remaining=config.limit - count,
            reset_epoch_s=reset_at,
            retry_after_s=0.0,
        )


_redis: redis.Redis | None = None
_limiter: RateLimiter | None = None


def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.Redis.from_url(get_settings().redis_url, decode_responses=True)
    return _redis


def get_rate_limiter() -> RateLimiter:
    global _limiter
    if _limiter is None:
        _limiter = RateLimiter(get_redis())
    return _limiter


def set_rate_limiter(limiter: RateLimiter | None) -> None:
    global _limiter
    _limiter = limiter


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    client = request.client
    if client and client.host:
        return client.host
    return "unknown"


def set_rate_headers(response: Response, decision: Decision) -> None:
    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(max(decision.remaining, 0))
    response.headers["X-RateLimit-Reset"] = str(int(decision.reset_epoch_s))


def rate_limit_headers(decision: Decision) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(max(decision.remaining, 0)),
        "X-RateLimit-Reset": str(int(decision.reset_epoch_s)),
    }
    if decision.retry_after_s > 0:
        headers["Retry-After"] = str(max(1, int(decision.retry_after_s)))
    return headers
