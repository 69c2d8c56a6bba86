"""Shipping providers: port, deterministic mock and carrier API adapter."""

from services.commerce_service.providers.shipping.http import HttpShippingProvider
from services.commerce_service.providers.shipping.mock import MockShippingProvider
from services.commerce_service.providers.shipping.port import (
    CarrierRate,
    Label,
    LabelRequest,
    RateRequest,
    ShippingProvider,
    ShippingWebhookEvent,
    TrackingEvent,
    TrackingResult,
)

__all__ = [
    "CarrierRate",
    "HttpShippingProvider",
    "Label",
    "LabelRequest",
    "MockShippingProvider",
    "RateRequest",
    "ShippingProvider",
    "ShippingWebhookEvent",
    "TrackingEvent",
    "TrackingResult",
]
