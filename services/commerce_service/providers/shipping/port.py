"""Shipping provider port."""

import hmac
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from services.commerce_service.providers.payments.port import ProviderHealth


@dataclass(frozen=True)
class RateRequest:
    store_id: str
    order_id: str
    destination: dict[str, Any] = field(default_factory=dict)
    weight_oz: float = 0


@dataclass(frozen=True)
class CarrierRate:
    id: str
    provider: str
    carrier: str
    service_level: str
    amount_cents: int
    currency: str = "USD"
    eta_days: Optional[int] = None


@dataclass(frozen=True)
class LabelRequest:
    store_id: str
    order_id: str
    rate_id: Optional[str] = None
    destination: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TrackingEvent:
    event_type: str
    status: str
    message: Optional[str] = None
    occurred_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "status": self.status,
            "message": self.message,
            "occurredAt": self.occurred_at,
        }


@dataclass(frozen=True)
class Label:
    provider: str
    provider_ref: str
    tracking_number: str
    status: str
    carrier: Optional[str] = None
    service_level: Optional[str] = None
    tracking_url: Optional[str] = None
    label_url: Optional[str] = None
    events: list[TrackingEvent] = field(default_factory=list)


@dataclass(frozen=True)
class TrackingResult:
    provider: str
    tracking_number: str
    status: str
    events: list[TrackingEvent] = field(default_factory=list)


@dataclass(frozen=True)
class ShippingWebhookEvent:
    accepted: bool
    event_type: Optional[str] = None
    provider_ref: Optional[str] = None
    tracking_number: Optional[str] = None
    status: Optional[str] = None
    reason: Optional[str] = None
    raw: Any = None


class ShippingProvider(ABC):
    name: str = "shipping"

    @abstractmethod
    async def healthcheck(self) -> ProviderHealth:
        ...

    @abstractmethod
    async def get_rates(self, request: RateRequest) -> list[CarrierRate]:
        ...

    @abstractmethod
    async def create_label(self, request: LabelRequest) -> Label:
        ...

    @abstractmethod
    async def track(self, tracking_number: str) -> TrackingResult:
        ...

    @abstractmethod
    async def parse_webhook_event(
        self, body: bytes, headers: Mapping[str, str]
    ) -> ShippingWebhookEvent:
        ...


def parse_tracking_webhook(
    body: bytes, headers: Mapping[str, str], webhook_secret: str = ""
) -> ShippingWebhookEvent:
    """Decode a ``{trackingNumber, status, eventType, providerRef}`` carrier webhook.

    When ``webhook_secret`` is set the ``x-webhook-secret`` header must match.
    """
    if webhook_secret:
        provided = headers.get("x-webhook-secret") or ""
        if not hmac.compare_digest(provided, webhook_secret):
            return ShippingWebhookEvent(accepted=False, reason="Invalid webhook secret")

    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        return ShippingWebhookEvent(accepted=False, reason="Invalid JSON payload")

    if not isinstance(payload, dict) or not payload.get("trackingNumber"):
        return ShippingWebhookEvent(
            accepted=False, reason="trackingNumber required", raw=payload
        )

    return ShippingWebhookEvent(
        accepted=True,
        event_type=str(payload.get("eventType") or "TRACKING_UPDATE"),
        provider_ref=str(payload["providerRef"]) if payload.get("providerRef") else None,
        tracking_number=str(payload["trackingNumber"]),
        status=str(payload["status"]) if payload.get("status") else None,
        raw=payload,
    )
