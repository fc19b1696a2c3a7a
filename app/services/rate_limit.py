"""Fixed-window abuse limits for the anonymous endpoints.

Each scope (request submission, address lookups) has its own budget per
client address and window. Counters live in Redis when it answers a ping at
startup; otherwise a per-process dictionary keeps the same contract.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Protocol

import redis
from fastapi import HTTPException, Request

from app.core.config import settings

_LOG = logging.getLogger("app.rate_limit")

SCOPE_CREATE_REQUEST = "create_request"
SCOPE_PLACES = "places"

# scope -> settings attribute holding its per-window budget
SCOPE_LIMIT_SETTINGS = {
    SCOPE_CREATE_REQUEST: "PUBLIC_CREATE_RATE_LIMIT",
    SCOPE_PLACES: "PLACES_RATE_LIMIT",
}

KEY_PREFIX = "ambugo:rl"


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int
    current_value: int


class RateLimiter(Protocol):
    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        ...


class InMemoryRateLimiter:
    """Single-process counters; expired windows are dropped once ``max_keys`` is reached."""

    def __init__(self, max_keys: int = 10_000):
        self._windows: dict[str, tuple[int, datetime]] = {}
        self._lock = Lock()
        self.max_keys = max_keys

    def __len__(self) -> int:
        return len(self._windows)

    def _drop_expired(self, now: datetime) -> None:
        for key in [key for key, (_, ends) in self._windows.items() if ends <= now]:
            del self._windows[key]

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        now = datetime.now(timezone.utc)
        window = timedelta(seconds=max(int(window_seconds), 1))
        with self._lock:
            if key not in self._windows and len(self._windows) >= self.max_keys:
                self._drop_expired(now)
            count, ends = self._windows.get(key, (0, now))
            if ends <= now:
                count, ends = 0, now + window
            count += 1
            self._windows[key] = (count, ends)
        retry_after = max(0, int((ends - now).total_seconds()))
        return RateLimitResult(allowed=count <= limit, retry_after_seconds=retry_after, current_value=count)


class RedisRateLimiter:
    def __init__(self, client: redis.Redis):
        self.client = client

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        window = int(max(window_seconds, 1))
        count = int(self.client.incr(key))
        if count == 1:
            self.client.expire(key, window)
        ttl = int(self.client.ttl(key))
        return RateLimitResult(
            allowed=count <= limit,
            retry_after_seconds=ttl if ttl >= 0 else window,
            current_value=count,
        )


_cached_limiter: RateLimiter | None = None


def _build_limiter() -> RateLimiter:
    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=0.4,
            socket_connect_timeout=0.4,
        )
        client.ping()
    except Exception as exc:
        _LOG.warning("redis unavailable for rate limits (%s); counting in memory", exc)
        return InMemoryRateLimiter()
    return RedisRateLimiter(client)


def get_rate_limiter() -> RateLimiter:
    global _cached_limiter
    if _cached_limiter is None:
        _cached_limiter = _build_limiter()
    return _cached_limiter


def reset_rate_limiter_for_tests(limiter: RateLimiter | None = None) -> None:
    global _cached_limiter
    _cached_limiter = limiter


def client_ip(request: Request) -> str:
    forwarded = str(request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return str(request.client.host if request.client else "unknown")


def limit_for_scope(scope: str) -> int:
    try:
        setting = SCOPE_LIMIT_SETTINGS[scope]
    except KeyError:
        raise ValueError(f"unknown rate limit scope: {scope}")
    return int(max(getattr(settings, setting), 1))


def rate_limit_key(scope: str, ip: str) -> str:
    # addresses are hashed so raw IPs never land in Redis
    digest = hashlib.sha256(str(ip or "-").strip().encode("utf-8")).hexdigest()[:20]
    return f"{KEY_PREFIX}:{scope}:{digest}"


def rate_limit_or_429(request: Request, scope: str) -> None:
    limit = limit_for_scope(scope)
    window = int(max(settings.RATE_LIMIT_WINDOW_SECONDS, 1))
    result = get_rate_limiter().hit(rate_limit_key(scope, client_ip(request)), limit=limit, window_seconds=window)
    if result.allowed:
        return
    retry_after = max(result.retry_after_seconds, 1)
    _LOG.warning("rate limit hit scope=%s count=%s limit=%s", scope, result.current_value, limit)
    raise HTTPException(
        status_code=429,
        detail=f"Πάρα πολλά αιτήματα. Δοκιμάστε ξανά σε {retry_after} δευτ.",
        headers={"Retry-After": str(retry_after)},
    )
