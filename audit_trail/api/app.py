"""
FastAPI application factory for the Audit Trail endpoint.

This module creates the FastAPI app with:
- CORS configuration for the dashboard page
- Table store lifecycle management
- The verb-dispatched /exec route
- A health endpoint
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .._version import __version__
from ..config import ServerConfig
from ..gateway import EntryGateway
from ..rows import COLUMNS
from ..store import InMemoryTableStore, TableStore, create_table_store
from .config import Settings
from .routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage table store lifecycle.

    An in-memory store starts empty and no other process can reach it,
    so its table is created here.
    """
    gateway = app.state.gateway
    store = gateway.store
    await store.connect()
    if isinstance(store, InMemoryTableStore) and not await store.table_exists(gateway.table_name):
        await store.create_table(gateway.table_name, COLUMNS)
        logger.info(f"Created in-memory table {gateway.table_name}")

    yield

    await store.close()


def create_app(
    settings: Settings | None = None,
    config: ServerConfig | None = None,
    store: TableStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: HTTP settings (loaded from env if not provided)
        config: Server configuration (loaded from env if not provided)
        store: Table store to serve (built from config if not provided)
    """
    settings = settings or Settings()
    config = config or ServerConfig.from_env()
    store = store or create_table_store(config.store)

    app = FastAPI(
        title="Asset Audit Trail",
        description="Read, append and delete audit trail entries of the asset dashboard",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gateway = EntryGateway(store, config.store)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "service": "audit-trail",
            "table": config.store.table_name,
        }

    return app
