"""Commerce service layer."""

from services.commerce_service.services.cart_service import CartService
from services.commerce_service.services.checkout_service import (
    CheckoutPayload,
    CheckoutService,
    CheckoutStartResult,
    CheckoutState,
    ConfirmationResult,
)
from services.commerce_service.services.order_service import OrderService
from services.commerce_service.services.production_service import (
    PRODUCTION_STEPS,
    ProductionService,
)
from services.commerce_service.services.quote_service import QuoteService

__all__ = [
    "CartService",
    "CheckoutPayload",
    "CheckoutService",
    "CheckoutStartResult",
    "CheckoutState",
    "ConfirmationResult",
    "OrderService",
    "PRODUCTION_STEPS",
    "ProductionService",
    "QuoteService",
]
