"""Webhook client that POSTs JSON over httpx."""

from typing import Any, Mapping, Optional

import httpx
from libs.common.logging import get_logger
from services.commerce_service.exceptions import ProviderError
from services.commerce_service.providers.webhooks.port import (
    WebhookClient,
    WebhookDelivery,
)

logger = get_logger(__name__)


class RealWebhookClient(WebhookClient):
    name = "http"

    def __init__(
        self,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    async def post(
        self, url: str, headers: Mapping[str, str], payload: Any
    ) -> WebhookDelivery:
        if not url:
            raise ProviderError(self.name, "Webhook URL required")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload, headers=dict(headers))
        except httpx.HTTPError as e:
            logger.error("Webhook delivery to %s failed: %s", url, e)
            raise ProviderError(self.name, f"delivery failed: {e}") from e

        if not response.is_success:
            raise ProviderError(
                self.name,
                f"Webhook delivery failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return WebhookDelivery(status=response.status_code)
