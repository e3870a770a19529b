from __future__ import annotations

import asyncio

from certsvc.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
)

CONFIG = RateLimitConfig(capacity=3, refill_rate=0.001)


def _check(limiter: InMemoryRateLimiter, key: str):
    return asyncio.run(limiter.check(key, CONFIG))


def test_in_memory_limiter_satisfies_protocol() -> None:
    assert isinstance(InMemoryRateLimiter(), RateLimiter)


def test_bucket_empties_after_capacity() -> None:
    limiter = InMemoryRateLimiter()
    results = [_check(limiter, "verify:ip:1.2.3.4") for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].retry_after > 0


def test_keys_are_independent() -> None:
    limiter = InMemoryRateLimiter()
    for _ in range(3):
        _check(limiter, "verify:ip:a")

    assert _check(limiter, "verify:ip:a").allowed is False
    assert _check(limiter, "verify:ip:b").allowed is True


def test_least_recently_used_bucket_is_evicted() -> None:
    limiter = InMemoryRateLimiter(max_keys=2)
    _check(limiter, "a")
    _check(limiter, "b")
    _check(limiter, "a")  # "b" is now the oldest
    _check(limiter, "c")

    assert set(limiter._buckets) == {"a", "c"}


def test_bucket_count_stays_bounded() -> None:
    limiter = InMemoryRateLimiter(max_keys=10)
    for i in range(100):
        _check(limiter, f"verify:ip:10.0.0.{i}")

    assert len(limiter._buckets) == 10
