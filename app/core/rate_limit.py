"""Sliding-window rate limiting.

A throttle, not a correctness mechanism: no lifecycle invariant relies on it.
The window state lives in a pluggable store so several API instances can share
it through Redis, while tests and single-instance deployments use memory.
"""

import threading
import time
import uuid
from collections import deque
from functools import lru_cache
from typing import Annotated, Callable, Protocol

import redis
from fastapi import Depends, Request

from app.core.config import get_settings
from app.core.dependencies import get_current_user
from app.exceptions import RateLimitedError
from app.models.user import User
from app.utils.logger import logger


class RateLimitStore(Protocol):
    def hit(self, key: str, window_seconds: float, now: float) -> int:
        """Record one request for `key` and return the count inside the window."""
        ...


class InMemoryRateLimitStore:
    """
    Process-local store; resets on restart.

    Keys whose newest hit is older than the longest window seen are dropped
    once per such window, so idle clients do not accumulate.
    """

    def __init__(self):
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._longest_window = 0.0
        self._last_sweep = 0.0

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def _sweep(self, cutoff: float) -> None:
        stale = [
            key for key, stamps in self._hits.items() if not stamps or stamps[-1] <= cutoff
        ]
        for key in stale:
            del self._hits[key]

    def hit(self, key: str, window_seconds: float, now: float) -> int:
        window_start = now - window_seconds
        with self._lock:
            self._longest_window = max(self._longest_window, window_seconds)
            if now - self._last_sweep >= self._longest_window:
                self._sweep(now - self._longest_window)
                self._last_sweep = now

            stamps = self._hits.setdefault(key, deque())
            while stamps and stamps[0] <= window_start:
                stamps.popleft()
            stamps.append(now)
            return len(stamps)

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


class RedisRateLimitStore:
    """Shared store backed by one Redis sorted set per key."""

    def __init__(self, client: redis.Redis, prefix: str = "ratelimit:"):
        self.client = client
        self.prefix = prefix

    def hit(self, key: str, window_seconds: float, now: float) -> int:
        redis_key = f"{self.prefix}{key}"
        pipe = self.client.pipeline()
        pipe.zremrangebyscore(redis_key, 0, now - window_seconds)
        pipe.zadd(redis_key, {f"{now}:{uuid.uuid4().hex}": now})
        pipe.zcard(redis_key)
        pipe.expire(redis_key, int(window_seconds) + 1)
        _, _, count, _ = pipe.execute()
        return int(count)


class RateLimiter:
    """Allows at most `max_requests` per key inside a sliding window."""

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    def allow(self, key: str) -> bool:
        return self.store.hit(key, self.window_seconds, self.clock()) <= self.max_requests


@lru_cache()
def get_rate_limit_store() -> RateLimitStore:
    """
    Build the configured rate limit store once per process.

    Uses Redis when RATE_LIMIT_BACKEND is "redis" and REDIS_URL is set, memory otherwise.
    """
    settings = get_settings()
    if settings.RATE_LIMIT_BACKEND == "redis" and settings.REDIS_URL:
        logger.info("Rate limiting backed by Redis")
        return RedisRateLimitStore(redis.Redis.from_url(settings.REDIS_URL))
    return InMemoryRateLimitStore()


def client_key(request: Request, user: User | None) -> str:
    """First X-Forwarded-For hop, then the socket peer, then the user id."""
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip()
    if ip:
        return ip
    if request.client and request.client.host:
        return request.client.host
    return f"user:{user.id_user}" if user else "anonymous"


def rate_limit(route: str, max_requests: int, window_seconds: float = 60.0):
    """
    Build a route dependency that raises RateLimitedError once the budget is spent.

    Example:
        @router.post("/apply", dependencies=[Depends(rate_limit("apply-mission", 5))])
    """

    def dependency(
        request: Request,
        user: Annotated[User, Depends(get_current_user)],
        store: Annotated[RateLimitStore, Depends(get_rate_limit_store)],
    ) -> None:
        if not get_settings().RATE_LIMIT_ENABLED:
            return
        limiter = RateLimiter(store, max_requests, window_seconds)
        if not limiter.allow(f"{client_key(request, user)}:{route}"):
            logger.warning(f"Rate limit exceeded on {route} for user {user.id_user}")
            raise RateLimitedError(route)

    return dependency
