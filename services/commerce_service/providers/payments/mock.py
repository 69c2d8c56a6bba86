"""Configurable in-memory payments provider for development and testing.

Intents live in process memory. A repeated ``idempotency_key`` returns the
intent created for it, as the real API does. ``configure`` switches what
confirmation returns so tests can drive the succeeded / failed / processing
paths.
"""

import copy
import dataclasses
import json
import re
from typing import Mapping, Optional
from uuid import uuid4

from libs.common.logging import get_logger
from services.commerce_service.providers.payments.port import (
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

logger = get_logger(__name__)


class MockPaymentsProvider(PaymentsProvider):
    name = "mock"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_status: str = "failed"
        self.intents: dict[str, PaymentIntent] = {}
        self.idempotency_keys: dict[str, str] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_status: str = "failed") -> None:
        """Configure the outcome of subsequent confirmations."""
        self.should_succeed = should_succeed
        self.failure_status = failure_status

    async def healthcheck(self) -> ProviderHealth:
        return ProviderHealth(ok=True, provider=self.name, message="Mock payments provider ready")

    async def create_payment_intent(
        self, request: PaymentIntentRequest
    ) -> PaymentIntent:
        self.calls.append({"method": "create_payment_intent", "request": request})
        if request.idempotency_key in self.idempotency_keys:
            return self._copy(self.intents[self.idempotency_keys[request.idempotency_key]])

        prefix = re.sub(r"[^a-zA-Z0-9]", "", str(request.order_id or request.store_id))
        ref = f"mock_pi_{prefix[:12] or 'store'}_{max(0, request.amount_cents)}_{uuid4().hex[:8]}"
        intent = PaymentIntent(
            id=ref,
            provider=self.name,
            provider_ref=ref,
            status=INTENT_REQUIRES_CONFIRMATION,
            amount_cents=request.amount_cents,
            currency=request.currency,
            client_secret="mock_secret",
            metadata=copy.deepcopy(request.metadata),
        )
        self.intents[ref] = intent
        if request.idempotency_key:
            self.idempotency_keys[request.idempotency_key] = ref
        return self._copy(intent)

    async def get_payment_intent(self, intent_id: str) -> Optional[PaymentIntent]:
        intent = self.intents.get(intent_id)
        return self._copy(intent) if intent else None

    async def confirm_payment_intent(self, provider_ref: str) -> ConfirmationResult:
        self.calls.append({"method": "confirm_payment_intent", "provider_ref": provider_ref})
        status = INTENT_SUCCEEDED if self.should_succeed else self.failure_status
        intent = self.intents.get(provider_ref)
        if intent is None:
            return ConfirmationResult(
                provider=self.name, provider_ref=provider_ref, status=status
            )

        # A succeeded intent stays succeeded
        if intent.status != INTENT_SUCCEEDED:
            intent = dataclasses.replace(intent, status=status)
            self.intents[provider_ref] = intent
        return ConfirmationResult(
            provider=self.name,
            provider_ref=provider_ref,
            status=intent.status,
            amount_cents=intent.amount_cents,
        )

    async def refund_payment(self, request: RefundRequest) -> RefundResult:
        self.calls.append({"method": "refund_payment", "request": request})
        return RefundResult(
            id=f"mock_re_{uuid4().hex[:12]}",
            provider=self.name,
            provider_ref=request.provider_ref,
            status="succeeded" if self.should_succeed else "failed",
        )

    async def parse_webhook_event(
        self, body: bytes, headers: Mapping[str, str]
    ) -> PaymentWebhookEvent:
        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            return PaymentWebhookEvent(accepted=False, reason="Invalid JSON payload")

        if (
            isinstance(payload, dict)
            and payload.get("event") == "payment_succeeded"
            and payload.get("providerRef")
        ):
            return PaymentWebhookEvent(
                accepted=True,
                event_type="payment_succeeded",
                provider_ref=str(payload["providerRef"]),
                amount_cents=int(payload.get("amountCents") or 0),
                raw=payload,
            )

        logger.info("Rejected mock payments webhook payload")
        return PaymentWebhookEvent(
            accepted=False, reason="Unsupported mock webhook payload", raw=payload
        )

    @staticmethod
    def _copy(intent: PaymentIntent) -> PaymentIntent:
        return dataclasses.replace(intent, metadata=copy.deepcopy(intent.metadata))
