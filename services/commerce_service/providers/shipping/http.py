"""Carrier aggregator adapter over a JSON HTTP API.

Endpoints::

    POST /rates            -> {"rates": [{id, carrier, serviceLevel, amountCents, currency, etaDays}]}
    POST /labels           -> {providerRef, trackingNumber, trackingUrl, labelUrl, status, events}
    GET  /tracking/{number} -> {status, events}
"""

from typing import Any, Mapping, Optional

import httpx
from services.commerce_service.exceptions import ProviderError
from services.commerce_service.providers.http import ProviderHTTPClient
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


def _events(raw: Any) -> list[TrackingEvent]:
    events = []
    for entry in raw or []:
        events.append(
            TrackingEvent(
                event_type=str(entry.get("eventType") or "TRACKING_UPDATE"),
                status=str(entry.get("status") or "unknown"),
                message=entry.get("message"),
                occurred_at=entry.get("occurredAt"),
            )
        )
    return events


class HttpShippingProvider(ProviderHTTPClient, ShippingProvider):
    name = "shipping_api"
    provider_name = "shipping_api"

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        webhook_secret: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_secret = webhook_secret
        super().__init__(
            base_url=api_url,
            headers={"Authorization": f"Bearer {api_key}"} if api_key else {},
            timeout=timeout,
            transport=transport,
        )

    async def healthcheck(self) -> ProviderHealth:
        if not self.base_url:
            return ProviderHealth(ok=False, provider=self.name, message="Missing SHIPPING_API_URL")
        try:
            await self._request("GET", "/health")
        except ProviderError as e:
            return ProviderHealth(ok=False, provider=self.name, message=e.message)
        return ProviderHealth(ok=True, provider=self.name)

    async def get_rates(self, request: RateRequest) -> list[CarrierRate]:
        data = await self._request(
            "POST",
            "/rates",
            json_data={
                "storeId": request.store_id,
                "orderId": request.order_id,
                "destination": request.destination,
                "weightOz": request.weight_oz,
            },
        )
        return [
            CarrierRate(
                id=str(rate["id"]),
                provider=self.name,
                carrier=str(rate.get("carrier") or ""),
                service_level=str(rate.get("serviceLevel") or ""),
                amount_cents=int(rate.get("amountCents") or 0),
                currency=str(rate.get("currency") or "USD"),
                eta_days=rate.get("etaDays"),
            )
            for rate in data.get("rates", [])
        ]

    async def create_label(self, request: LabelRequest) -> Label:
        data = await self._request(
            "POST",
            "/labels",
            json_data={
                "storeId": request.store_id,
                "orderId": request.order_id,
                "rateId": request.rate_id,
                "destination": request.destination,
                "metadata": request.metadata,
            },
        )
        if not data.get("trackingNumber"):
            raise ProviderError(self.name, "label response missing trackingNumber")
        return Label(
            provider=self.name,
            provider_ref=str(data.get("providerRef") or data["trackingNumber"]),
            tracking_number=str(data["trackingNumber"]),
            status=str(data.get("status") or "label_created"),
            carrier=data.get("carrier"),
            service_level=data.get("serviceLevel"),
            tracking_url=data.get("trackingUrl"),
            label_url=data.get("labelUrl"),
            events=_events(data.get("events")),
        )

    async def track(self, tracking_number: str) -> TrackingResult:
        data = await self._request("GET", f"/tracking/{tracking_number}")
        return TrackingResult(
            provider=self.name,
            tracking_number=tracking_number,
            status=str(data.get("status") or "unknown"),
            events=_events(data.get("events")),
        )

    async def parse_webhook_event(
        self, body: bytes, headers: Mapping[str, str]
    ) -> ShippingWebhookEvent:
        return parse_tracking_webhook(body, headers, self.webhook_secret)
