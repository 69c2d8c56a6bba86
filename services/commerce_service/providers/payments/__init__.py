"""Payments providers: port, in-memory mock and Stripe adapter."""

from services.commerce_service.providers.payments.mock import MockPaymentsProvider
from services.commerce_service.providers.payments.port import (
    INTENT_FAILED,
    INTENT_PROCESSING,
    INTENT_REQUIRES_CONFIRMATION,
    INTENT_SUCCEEDED,
    ConfirmationResult,
    PaymentIntent,
    PaymentIntentRequest,
    PaymentsProvider,
    PaymentWebhookEvent,
    ProviderHealth,
    RefundRequest,
    RefundResult,
)
from services.commerce_service.providers.payments.stripe import (
    StripePaymentsProvider,
)

__all__ = [
    "INTENT_FAILED",
    "INTENT_PROCESSING",
    "INTENT_REQUIRES_CONFIRMATION",
    "INTENT_SUCCEEDED",
    "ConfirmationResult",
    "MockPaymentsProvider",
    "PaymentIntent",
    "PaymentIntentRequest",
    "PaymentWebhookEvent",
    "PaymentsProvider",
    "ProviderHealth",
    "RefundRequest",
    "RefundResult",
    "StripePaymentsProvider",
]
