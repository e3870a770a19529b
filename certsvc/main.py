from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from certsvc.api.certificates import router as certificates_router
from certsvc.api.dependencies import in_memory_repos, seed_demo_catalog
from certsvc.api.health import router as health_router
from certsvc.api.metrics_endpoint import router as metrics_router
from certsvc.api.verify import router as verify_router
from certsvc.core.config import SETTINGS
from certsvc.core.logging import setup_logging
from certsvc.db.engine import engine, lifespan_db
from certsvc.db.redis import lifespan_redis
from certsvc.middleware.metrics import MetricsMiddleware
from certsvc.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one fails.
    async with lifespan_db():
        async with lifespan_redis():
            if SETTINGS.is_dev and engine is None:
                await seed_demo_catalog(in_memory_repos)
            yield


app = FastAPI(
    title="certificate-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext (outermost) → Metrics → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(certificates_router)
app.include_router(verify_router)

logger.info(
    "certificate-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
