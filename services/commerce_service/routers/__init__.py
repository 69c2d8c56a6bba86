"""Commerce service routers package."""

from services.commerce_service.routers.checkout import router as checkout_router
from services.commerce_service.routers.pricing import router as pricing_router
from services.commerce_service.routers.webhooks import router as webhooks_router

__all__ = [
    "checkout_router",
    "pricing_router",
    "webhooks_router",
]
