"""
FastAPI application for the registration analytics backend.

Owns the database pool lifecycle and mounts the public and admin
v1 routers.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from registrar.adapters.repository.postgres import run_migrations
from registrar.api.v1 import router as v1_router
from registrar.config.settings import get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Quotes, public config and registration outcome logging",
    },
    {
        "name": "admin",
        "description": "Dashboard, analytics, configuration and report export (HTTP Basic)",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the connection pool and apply migrations; close the pool on shutdown."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    logger.info("Ledger pool opened (min=%d, max=%d)", settings.pool_min_size, settings.pool_max_size)

    try:
        run_migrations(pool)
        app.state.pool = pool
        yield
    finally:
        pool.close()
        logger.info("Ledger pool closed")


app = FastAPI(
    title="registrar",
    description="Name registration analytics backend",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """Returns 200 when the database answers; raises otherwise."""
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
