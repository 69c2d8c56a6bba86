import os
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Optional overrides for local test runs (e.g. LOG_LEVEL, real provider sandboxes)
from dotenv import load_dotenv

env_test_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)
os.environ.setdefault("ENVIRONMENT", "test")

from libs.common.config import get_settings
from libs.db.base import Base

# Import all models so metadata includes every table
from services.commerce_service import models as _commerce_models  # noqa: F401
from services.commerce_service.providers import Providers
from tests.factories import (
    PricingRuleFactory,
    ProductFactory,
    ProductVariantFactory,
    StoreFactory,
    UserFactory,
)

# Settings may have been cached before the env file was loaded
get_settings.cache_clear()


@pytest_asyncio.fixture
async def test_engine():
    """
    In-memory SQLite engine, one per test. StaticPool keeps the single
    connection alive so every session sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()

    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def providers() -> Providers:
    """Mock adapters for every provider family."""
    return Providers.mock()


@dataclass
class Catalog:
    store: object
    user: object
    product: object
    variant: object
    rule: object


# blank 5.00, 100% markup; 12+ drops the markup to 80%, 48+ to 60% less 0.50
TIERED_CONFIG = {
    "baseMarkupPercent": 100,
    "breaks": [
        {"minQty": 1},
        {"minQty": 12, "unitMarkupDeltaPercent": -20},
        {"minQty": 48, "unitMarkupDeltaPercent": -40, "fixedUnitDiscount": 0.5},
    ],
}


@pytest_asyncio.fixture
async def catalog(db_session) -> Catalog:
    """A store with one customer and one tee whose pricing rule has three breaks."""
    store = StoreFactory.create(webhook_url="https://hooks.example.test/orders")
    user = UserFactory.create()
    product = ProductFactory.create(store_id=store.id)
    variant = ProductVariantFactory.create(
        product_id=product.id, supplier_cost=Decimal("5.00")
    )
    rule = PricingRuleFactory.create(product_id=product.id, config=TIERED_CONFIG)
    db_session.add_all([store, user, product, variant, rule])
    await db_session.commit()
    return Catalog(store=store, user=user, product=product, variant=variant, rule=rule)


@pytest_asyncio.fixture
async def client(db_session, providers) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the app and overridden DB dependency.
    """
    from libs.db.session import get_async_db
    from services.commerce_service.app.main import create_app

    app = create_app(providers=providers)
    app.dependency_overrides[get_async_db] = lambda: db_session

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
