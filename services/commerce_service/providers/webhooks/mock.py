"""Webhook client that records deliveries instead of sending them."""

from typing import Any, Mapping
from uuid import uuid4

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.commerce_service.providers.webhooks.port import (
    WebhookClient,
    WebhookDelivery,
)

logger = get_logger(__name__)


class MockWebhookClient(WebhookClient):
    name = "mock"

    def __init__(self) -> None:
        self.deliveries: list[dict[str, Any]] = []

    async def post(
        self, url: str, headers: Mapping[str, str], payload: Any
    ) -> WebhookDelivery:
        ref = f"mock_wh_{uuid4().hex[:12]}"
        self.deliveries.append(
            {
                "url": url,
                "headers": dict(headers),
                "body": payload,
                "delivered_at": utc_now().isoformat(),
                "provider_ref": ref,
            }
        )
        logger.info("Recorded mock webhook delivery to %s", url)
        return WebhookDelivery(status=200, provider_ref=ref)
