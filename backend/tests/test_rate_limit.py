from __future__ import annotations

import pytest

from tsparse.security.rate_limit import (
    InMemoryFixedWindowRateLimiter,
    RateLimitExceeded,
    RedisFixedWindowRateLimiter,
)


class FakeClock:
    def __init__(self, now: float = 1_000_020.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeRedis:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}
        self.expires: dict[str, int] = {}

    def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def expire(self, key: str, seconds: int) -> None:
        self.expires[key] = seconds


class DownRedis:
    def incr(self, key: str) -> int:
        raise ConnectionError("redis down")


def test_in_memory_window_limits_and_resets():
    clock = FakeClock()
    limiter = InMemoryFixedWindowRateLimiter(limit=2, clock=clock)
    limiter.check("1.2.3.4")
    limiter.check("1.2.3.4")
    with pytest.raises(RateLimitExceeded) as exc:
        limiter.check("1.2.3.4")
    assert exc.value.status_code == 429
    assert exc.value.kind == "rate_limited"

    limiter.check("5.6.7.8")

    clock.now += 60
    limiter.check("1.2.3.4")


def test_redis_window_limits_and_sets_expiry():
    redis = FakeRedis()
    limiter = RedisFixedWindowRateLimiter(redis, limit=1, clock=FakeClock())
    limiter.check("k")
    with pytest.raises(RateLimitExceeded):
        limiter.check("k")
    assert list(redis.expires.values()) == [60]


def test_redis_unavailable_fails_open():
    RedisFixedWindowRateLimiter(DownRedis(), limit=1).check("k")
