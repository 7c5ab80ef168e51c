from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docseal.api.events import router as events_router
from docseal.api.health import router as health_router
from docseal.api.letters import router as letters_router
from docseal.api.logs import router as logs_router
from docseal.api.metrics_endpoint import router as metrics_router
from docseal.api.stats import router as stats_router
from docseal.api.users import router as users_router
from docseal.api.verify import router as verify_router
from docseal.core.config import SETTINGS
from docseal.core.logging import setup_logging
from docseal.db.engine import lifespan_db
from docseal.db.redis import lifespan_redis
from docseal.middleware.metrics import MetricsMiddleware
from docseal.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
for _handler in logging.getLogger().handlers:
    install_request_context_filter(_handler)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="docseal",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[SETTINGS.public_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Retry-After", "X-Request-ID"],
)

# Last added runs first: RequestContext → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(letters_router)
app.include_router(verify_router)
app.include_router(events_router)
app.include_router(users_router)
app.include_router(logs_router)
app.include_router(stats_router)

logger.info(
    "docseal started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
