"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from tcgp.auth.router import router as auth_router
from tcgp.catalog.catalog import CardCatalog
from tcgp.catalog.router import router as cards_router
from tcgp.config import get_settings
from tcgp.dashboard.router import router as dashboard_router
from tcgp.database import close_db, init_db
from tcgp.errors import BackendUnavailableError
from tcgp.health.router import router as health_router
from tcgp.middleware import setup_middleware
from tcgp.notifications.router import router as notifications_router
from tcgp.redis_client import close_redis, init_redis
from tcgp.trades.router import router as trades_router
from tcgp.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Lookups retry the load on demand if this fails.
    try:
        app.state.catalog.load()
    except BackendUnavailableError:
        logger.warning("catalog_preload_failed", path=settings.catalog_path)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Pocket Trades API",
        description="Trade matching for Pokemon TCG Pocket collectors",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.catalog = CardCatalog(settings.catalog_path)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(cards_router)
    app.include_router(trades_router)
    app.include_router(notifications_router)
    app.include_router(dashboard_router)

    return app


app = create_app()
