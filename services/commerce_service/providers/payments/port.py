"""Payments provider port.

Every payments adapter implements this contract; checkout only ever talks
to a ``PaymentsProvider`` injected at construction.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

INTENT_REQUIRES_CONFIRMATION = "requires_confirmation"
INTENT_PROCESSING = "processing"
INTENT_SUCCEEDED = "succeeded"
INTENT_FAILED = "failed"


@dataclass(frozen=True)
class ProviderHealth:
    ok: bool
    provider: str
    message: Optional[str] = None


@dataclass(frozen=True)
class PaymentIntentRequest:
    store_id: str
    amount_cents: int
    currency: str = "USD"
    order_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class PaymentIntent:
    """Provider-tracked payment handle. ``metadata`` is written once at creation."""

    id: str
    provider: str
    provider_ref: str
    status: str
    amount_cents: int = 0
    currency: str = "USD"
    client_secret: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConfirmationResult:
    provider: str
    provider_ref: str
    status: str
    amount_cents: int = 0


@dataclass(frozen=True)
class RefundRequest:
    provider_ref: str
    amount_cents: Optional[int] = None
    reason: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RefundResult:
    id: str
    provider: str
    provider_ref: str
    status: str


@dataclass(frozen=True)
class PaymentWebhookEvent:
    accepted: bool
    event_type: Optional[str] = None
    provider_ref: Optional[str] = None
    amount_cents: Optional[int] = None
    reason: Optional[str] = None
    raw: Any = None


class PaymentsProvider(ABC):
    """Abstract payments provider interface."""

    name: str = "payments"

    @abstractmethod
    async def healthcheck(self) -> ProviderHealth:
        ...

    @abstractmethod
    async def create_payment_intent(
        self, request: PaymentIntentRequest
    ) -> PaymentIntent:
        """Create an intent carrying ``request.metadata`` verbatim."""
        ...

    @abstractmethod
    async def get_payment_intent(self, intent_id: str) -> Optional[PaymentIntent]:
        """Return the intent, or None when the provider does not know it."""
        ...

    @abstractmethod
    async def confirm_payment_intent(self, provider_ref: str) -> ConfirmationResult:
        ...

    @abstractmethod
    async def refund_payment(self, request: RefundRequest) -> RefundResult:
        ...

    @abstractmethod
    async def parse_webhook_event(
        self, body: bytes, headers: Mapping[str, str]
    ) -> PaymentWebhookEvent:
        """Verify and decode an inbound webhook. Never raises on bad input."""
        ...
