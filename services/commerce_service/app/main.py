"""FastAPI application for the Commerce Service."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.db.base import Base
from libs.db.config import engine
from services.commerce_service import models  # noqa: F401  (registers mappers)
from services.commerce_service.providers import Providers, build_providers
from services.commerce_service.routers import (
    checkout_router,
    pricing_router,
    webhooks_router,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # Local SQLite runs have no migration step
    if settings.ENVIRONMENT == "local" and settings.DATABASE_URL.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Created tables on %s", settings.DATABASE_URL)
    yield
    await engine.dispose()


def create_app(providers: Optional[Providers] = None) -> FastAPI:
    """Create and configure the Commerce Service FastAPI app.

    ``providers`` overrides the adapters resolved from settings (tests pass
    mocks here).
    """
    app = FastAPI(
        title="Commerce Service",
        version="0.1.0",
        description="Pricing, cart checkout and production handoff for decorated apparel stores.",
        lifespan=lifespan,
    )
    app.state.providers = providers or build_providers()

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "commerce"}

    app.include_router(pricing_router)
    app.include_router(checkout_router)
    app.include_router(webhooks_router)

    return app


app = create_app()
