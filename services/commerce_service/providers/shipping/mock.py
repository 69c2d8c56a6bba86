"""Deterministic shipping provider: fixed rates, tracking numbers derived from the order id."""

import re
from typing import Mapping

from libs.common.datetime_utils import utc_now
from services.commerce_service.providers.payments.port import ProviderHealth
from services.commerce_service.providers.shipping.port import (
    CarrierRate,
    Label,
    LabelRequest,
    RateRequest,
    ShippingProvider,
    ShippingWebhookEvent,
    TrackingEvent,
    TrackingResult,
    parse_tracking_webhook,
)

GROUND_RATE_ID = "mock_rate_ground"
EXPRESS_RATE_ID = "mock_rate_express"


class MockShippingProvider(ShippingProvider):
    name = "mock"

    def __init__(self, webhook_secret: str = ""):
        self.webhook_secret = webhook_secret

    async def healthcheck(self) -> ProviderHealth:
        return ProviderHealth(ok=True, provider=self.name, message="Mock shipping provider ready")

    async def get_rates(self, request: RateRequest) -> list[CarrierRate]:
        return [
            CarrierRate(
                id=GROUND_RATE_ID,
                provider=self.name,
                carrier="MOCK_CARRIER",
                service_level="GROUND",
                amount_cents=1299,
                eta_days=4,
            ),
            CarrierRate(
                id=EXPRESS_RATE_ID,
                provider=self.name,
                carrier="MOCK_CARRIER",
                service_level="EXPRESS",
                amount_cents=2499,
                eta_days=2,
            ),
        ]

    async def create_label(self, request: LabelRequest) -> Label:
        rate_id = request.rate_id or GROUND_RATE_ID
        suffix = re.sub(r"[^a-zA-Z0-9]", "", request.order_id)[-8:].upper().ljust(8, "0")
        tracking_number = f"MOCKTRACK{suffix}"
        return Label(
            provider=self.name,
            provider_ref=f"mock_shp_{rate_id}_{suffix}",
            tracking_number=tracking_number,
            status="label_created",
            carrier="MOCK_CARRIER",
            service_level="EXPRESS" if rate_id == EXPRESS_RATE_ID else "GROUND",
            tracking_url=f"https://tracking.mock.local/{tracking_number}",
            label_url=f"https://labels.mock.local/{tracking_number}.pdf",
            events=[
                TrackingEvent(
                    event_type="LABEL_CREATED",
                    status="label_created",
                    message=f"Mock label created with {rate_id}",
                    occurred_at=utc_now().isoformat(),
                )
            ],
        )

    async def track(self, tracking_number: str) -> TrackingResult:
        return TrackingResult(
            provider=self.name,
            tracking_number=tracking_number,
            status="in_transit",
            events=[
                TrackingEvent(
                    event_type="TRACKING_UPDATE",
                    status="in_transit",
                    message="Mock package scanned at origin facility",
                    occurred_at=utc_now().isoformat(),
                )
            ],
        )

    async def parse_webhook_event(
        self, body: bytes, headers: Mapping[str, str]
    ) -> ShippingWebhookEvent:
        return parse_tracking_webhook(body, headers, self.webhook_secret)
