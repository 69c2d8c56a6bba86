"""Outbound webhook clients: port, recording mock and httpx client."""

from services.commerce_service.providers.webhooks.mock import MockWebhookClient
from services.commerce_service.providers.webhooks.port import (
    WebhookClient,
    WebhookDelivery,
)
from services.commerce_service.providers.webhooks.real import RealWebhookClient

__all__ = [
    "MockWebhookClient",
    "RealWebhookClient",
    "WebhookClient",
    "WebhookDelivery",
]
