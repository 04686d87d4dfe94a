"""Sequential FastAPI Backend — main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sequential import config
from sequential.db import connection, sqlite_migrations
from sequential.observability import initialize as initialize_observability, shutdown as shutdown_observability
from sequential.routers.collections import collections_router
from sequential.routers.preferences import preferences_router
from sequential.services.collections import get_token_factory

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("sequential")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Sequential backend starting up")
    initialize_observability(app)

    # 1. Initialize DB connection
    db = await connection.get_connection()

    # 2. Run migrations
    await sqlite_migrations.run_migrations(db)

    # 3. Token factory (warns when the signing secret is the default)
    get_token_factory()

    yield

    logger.info("Sequential backend shutting down")
    shutdown_observability(app)
    await connection.close_connection()


app = FastAPI(
    title="Sequential API",
    description="Resolves image selections into ordered, persistent access tokens",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS — allow the frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(collections_router)
app.include_router(preferences_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "db": "connected" if connection._connection else "disconnected",
    }
