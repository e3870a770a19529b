"""Rate limiting dependency for FastAPI routes.

A dependency rather than a middleware so that only the routes declaring
it are limited: /v1/verify is public and gets a per-IP budget, while
/health, /ready and /metrics stay unlimited.

Keys are `<scope>:ip:<client ip>`, so one client's verify budget is
independent of any other limited route.  If the backend (Redis) is
unreachable the request is let through: a broken limiter must not take
certificate validation down with it.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, Response, status

from certsvc.core.metrics import RATE_LIMIT_HITS
from certsvc.db.redis import redis_pool
from certsvc.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

if redis_pool is not None:
    _rate_limiter: RateLimiter = RedisRateLimiter(redis_pool)
else:
    _rate_limiter = InMemoryRateLimiter()


_DEFAULT_CONFIG = RateLimitConfig()

# 30 burst, then one verification every two seconds per IP
VERIFY_RATE_LIMIT = RateLimitConfig(capacity=30, refill_rate=0.5)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def require_rate_limit(scope: str, config: RateLimitConfig = _DEFAULT_CONFIG):
    """Dependency factory: enforce a token-bucket limit on a route.

    Usage:
        @router.get("/...", dependencies=[Depends(require_rate_limit("verify"))])
    """

    async def _check(request: Request, response: Response) -> None:
        key = f"{scope}:ip:{client_ip(request)}"
        try:
            result: RateLimitResult = await _rate_limiter.check(key, config)
        except Exception:
            logger.exception("Rate limiter unavailable, allowing request key=%s", key)
            return

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

        if not result.allowed:
            RATE_LIMIT_HITS.labels(endpoint=scope).inc()
            logger.warning("Rate limit exceeded key=%s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check
