"""FastAPI dependencies wiring the service layer to the app's providers."""

from fastapi import Depends, Request
from services.commerce_service.pricing import PricingEngine
from services.commerce_service.providers import Providers
from services.commerce_service.services import (
    CheckoutService,
    OrderService,
    ProductionService,
    QuoteService,
)


def get_providers(request: Request) -> Providers:
    return request.app.state.providers


def get_pricing_engine() -> PricingEngine:
    return PricingEngine()


def get_quote_service() -> QuoteService:
    return QuoteService()


def get_production_service(
    providers: Providers = Depends(get_providers),
) -> ProductionService:
    return ProductionService(shipping=providers.shipping)


def get_checkout_service(
    providers: Providers = Depends(get_providers),
    production_service: ProductionService = Depends(get_production_service),
) -> CheckoutService:
    return CheckoutService(
        payments=providers.payments,
        tax=providers.tax,
        notifications=providers.notifications,
        webhooks=providers.webhooks,
        order_service=OrderService(payments=providers.payments),
        production_service=production_service,
    )
