"""Token-bucket rate limiting for the public endpoints.

The verify endpoint is reachable by anyone holding a certificate URL, so
it is the obvious target for enumeration.  Each client key owns a bucket
of `capacity` tokens that refills at `refill_rate` tokens per second; a
request costs one token and is rejected when the bucket is empty.

Two backends share one Protocol:
  InMemoryRateLimiter  single process (dev, tests)
  RedisRateLimiter     shared across API instances, updated atomically
                       by a Lua script
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Outcome of one check.

    retry_after is the number of seconds until the next token is
    available (0 when allowed).
    """

    allowed: bool
    remaining: int
    limit: int
    retry_after: float


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """capacity: burst size.  refill_rate: tokens added per second."""

    capacity: int = 60
    refill_rate: float = 1.0


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...


class InMemoryRateLimiter:
    """Per-process buckets.  Behind a load balancer every instance counts
    separately, which is why production uses RedisRateLimiter.

    At most `max_keys` buckets are kept; the least recently used one is
    dropped first (its client starts again with a full bucket).
    """

    def __init__(self, *, max_keys: int = 10_000) -> None:
        # key -> (tokens_remaining, last_refill_timestamp), oldest use first
        self._buckets: dict[str, tuple[float, float]] = {}
        self._max_keys = max_keys

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = time.monotonic()

        if key not in self._buckets:
            while len(self._buckets) >= self._max_keys:
                del self._buckets[next(iter(self._buckets))]
            self._buckets[key] = (config.capacity - 1, now)
            return RateLimitResult(
                allowed=True,
                remaining=config.capacity - 1,
                limit=config.capacity,
                retry_after=0,
            )

        tokens, last_refill = self._buckets.pop(key)
        tokens = min(config.capacity, tokens + (now - last_refill) * config.refill_rate)

        if tokens >= 1:
            tokens -= 1
            self._buckets[key] = (tokens, now)
            return RateLimitResult(
                allowed=True,
                remaining=int(tokens),
                limit=config.capacity,
                retry_after=0,
            )

        self._buckets[key] = (tokens, now)
        return RateLimitResult(
            allowed=False,
            remaining=0,
            limit=config.capacity,
            retry_after=(1 - tokens) / config.refill_rate,
        )


class RedisRateLimiter:
    """Redis-backed token bucket.

    The refill/consume step is a read-modify-write, so it runs as a Lua
    script: Redis executes the whole script atomically and two concurrent
    requests can never both spend the same token.
    """

    # KEYS[1] = bucket key
    # ARGV[1] = capacity, ARGV[2] = refill_rate, ARGV[3] = now (seconds)
    # Returns {allowed (0/1), remaining, retry_after_ms}
    _LUA_SCRIPT = """
    local key = KEYS[1]
    local capacity = tonumber(ARGV[1])
    local refill_rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local ttl = math.ceil(capacity / refill_rate) + 60

    local bucket = redis.call('HMGET', key, 'tokens', 'last_refill')
    local tokens = tonumber(bucket[1])
    local last_refill = tonumber(bucket[2])

    if tokens == nil then
        tokens = capacity - 1
        redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
        redis.call('EXPIRE', key, ttl)
        return {1, tokens, 0}
    end

    tokens = math.min(capacity, tokens + (now - last_refill) * refill_rate)

    if tokens >= 1 then
        tokens = tokens - 1
        redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
        redis.call('EXPIRE', key, ttl)
        return {1, math.floor(tokens), 0}
    end

    local retry_after_ms = math.ceil((1 - tokens) / refill_rate * 1000)
    redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
    return {0, 0, retry_after_ms}
    """

    def __init__(self, redis_client, *, namespace: str = "certsvc:ratelimit") -> None:
        self._redis = redis_client
        self._namespace = namespace
        self._script = None

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        if self._script is None:
            self._script = self._redis.register_script(self._LUA_SCRIPT)
        allowed, remaining, retry_after_ms = await self._script(
            keys=[self._key(key)],
            args=[config.capacity, config.refill_rate, time.time()],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=int(remaining),
            limit=config.capacity,
            retry_after=int(retry_after_ms) / 1000,
        )
