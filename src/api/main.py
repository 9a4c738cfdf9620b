"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance, wires the host
ledger and registrar storage during lifespan startup, and exposes the
health check.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.chain.bootstrap import build_chain, build_registrar
from src.adapters.events.console import ConsoleEventPublisher
from src.adapters.repository.memory import InMemoryRegistrarRepository
from src.adapters.repository.postgres import PostgresRegistrarRepository, run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Subdomain Registrar API v1 - List names for sale and register subdomains",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Builds the simulated host ledger
    - Opens the registrar repository (and runs migrations for PostgreSQL)
    - Records the registrar administrator
    - Closes the connection pool on shutdown
    """
    settings = get_settings()
    logging.getLogger("src").setLevel(settings.log_level)

    logger.info("Starting application...")
    chain = build_chain(settings)

    pool = None
    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        repository = PostgresRegistrarRepository(pool)
    else:
        repository = InMemoryRegistrarRepository()

    # Store shared state in app state for dependency injection
    app.state.chain = chain
    app.state.repository = repository
    app.state.pool = pool

    registrar = build_registrar(
        chain=chain,
        repository=repository,
        events=ConsoleEventPublisher(),
        address=settings.registrar_address,
        tld=settings.tld,
    )
    registrar.initialize(settings.registrar_owner)

    logger.info("Application startup complete (storage=%s)", settings.storage_backend)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="subregistrar",
    description="Delegated subdomain registrar - sells subdomains of listed names "
    "and splits proceeds between owners and referrers",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with storage validation.

    Returns 200 OK if application and (when configured) database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
