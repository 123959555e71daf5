"""Request rate limiting.

Design:
- Fixed window per minute, keyed by client address.
- In-process counters by default; Redis counters when REDIS_URL is set so
  several workers share one budget.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from fastapi import status

from tsparse.api.errors import ApiError
from tsparse.core.config import Settings
from tsparse.services.redis_client import get_redis


logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait before making more requests."


class RateLimitExceeded(ApiError):
    kind = "rate_limited"
    default_status = status.HTTP_429_TOO_MANY_REQUESTS


class RateLimiter(Protocol):
    def check(self, key: str) -> None: ...


@dataclass(slots=True)
class _Window:
    start: int
    count: int


class InMemoryFixedWindowRateLimiter:
    """Per-process limiter. With several workers the limit applies per worker."""

    def __init__(self, *, limit: int, window_seconds: int = 60, clock: Optional[Callable[[], float]] = None) -> None:
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock or time.time
        self._windows: dict[str, _Window] = {}

    def check(self, key: str) -> None:
        window = int(self._clock()) // self._window_seconds
        w = self._windows.get(key)
        if w is None or w.start != window:
            w = _Window(start=window, count=0)
            self._windows[key] = w
        w.count += 1
        if w.count > self._limit:
            raise RateLimitExceeded(RATE_LIMIT_MESSAGE, headers={"retry-after": str(self._retry_after())})

    def _retry_after(self) -> int:
        return self._window_seconds - int(self._clock()) % self._window_seconds


class RedisFixedWindowRateLimiter:
    """Shared counters (INCR + EXPIRE). Fails open when Redis is unreachable."""

    def __init__(
        self,
        client: Any,
        *,
        limit: int,
        window_seconds: int = 60,
        prefix: str = "tsparse:rl",
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._client = client
        self._limit = limit
        self._window_seconds = window_seconds
        self._prefix = prefix
        self._clock = clock or time.time

    def check(self, key: str) -> None:
        window = int(self._clock()) // self._window_seconds
        redis_key = f"{self._prefix}:{key}:{window}"
        try:
            count = int(self._client.incr(redis_key))
            if count == 1:
                self._client.expire(redis_key, self._window_seconds)
        except Exception as e:  # noqa: BLE001
            logger.warning("Rate limit store unavailable; allowing request: %s", e)
            return
        if count > self._limit:
            raise RateLimitExceeded(RATE_LIMIT_MESSAGE)


def build_rate_limiter(settings: Settings) -> RateLimiter:
    if settings.redis_url:
        return RedisFixedWindowRateLimiter(get_redis(settings.redis_url), limit=settings.rate_limit_per_minute)
    return InMemoryFixedWindowRateLimiter(limit=settings.rate_limit_per_minute)
