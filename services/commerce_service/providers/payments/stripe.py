"""Stripe payments adapter over the Stripe REST API.

Stripe takes form-encoded bodies and string-only metadata, so structured
metadata values (``shipping``) are JSON-encoded on the way in and decoded on
the way out.
"""

import hashlib
import hmac
import json
import time
from typing import Any, Mapping, Optional

import httpx
from libs.common.logging import get_logger
from services.commerce_service.exceptions import ProviderError
from services.commerce_service.providers.http import ProviderHTTPClient
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

logger = get_logger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300


def _map_status(stripe_status: Optional[str]) -> str:
    if stripe_status == "succeeded":
        return INTENT_SUCCEEDED
    if stripe_status == "processing":
        return INTENT_PROCESSING
    if stripe_status == "canceled":
        return INTENT_FAILED
    return INTENT_REQUIRES_CONFIRMATION


def encode_metadata(metadata: Mapping[str, Any]) -> dict[str, str]:
    """Flatten metadata into Stripe's ``metadata[key]=value`` form fields."""
    fields = {}
    for key, value in metadata.items():
        if value is None:
            continue
        fields[f"metadata[{key}]"] = (
            value if isinstance(value, str) else json.dumps(value, default=str)
        )
    return fields


def decode_metadata(metadata: Optional[Mapping[str, str]]) -> dict[str, Any]:
    decoded: dict[str, Any] = {}
    for key, value in (metadata or {}).items():
        if isinstance(value, str) and value[:1] in ("{", "["):
            try:
                decoded[key] = json.loads(value)
                continue
            except ValueError:
                pass
        decoded[key] = value
    return decoded


class StripePaymentsProvider(ProviderHTTPClient, PaymentsProvider):
    name = "stripe"
    provider_name = "stripe"

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str = "",
        api_base: str = "https://api.stripe.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        super().__init__(
            base_url=api_base,
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=timeout,
            transport=transport,
        )

    def _assert_ready(self) -> None:
        if not self.secret_key:
            raise ProviderError(
                self.name, "Stripe provider is not configured (missing STRIPE_SECRET_KEY)"
            )

    def _to_intent(self, data: dict) -> PaymentIntent:
        return PaymentIntent(
            id=data["id"],
            provider=self.name,
            provider_ref=data["id"],
            status=_map_status(data.get("status")),
            amount_cents=int(data.get("amount") or 0),
            currency=str(data.get("currency") or "usd").upper(),
            client_secret=data.get("client_secret"),
            metadata=decode_metadata(data.get("metadata")),
        )

    async def healthcheck(self) -> ProviderHealth:
        if not self.secret_key:
            return ProviderHealth(ok=False, provider=self.name, message="Missing STRIPE_SECRET_KEY")
        try:
            await self._request("GET", "/v1/balance")
        except ProviderError as e:
            return ProviderHealth(ok=False, provider=self.name, message=e.message)
        return ProviderHealth(ok=True, provider=self.name, message="Stripe API reachable")

    async def create_payment_intent(
        self, request: PaymentIntentRequest
    ) -> PaymentIntent:
        self._assert_ready()
        form = {
            "amount": str(request.amount_cents),
            "currency": request.currency.lower(),
            "automatic_payment_methods[enabled]": "true",
        }
        form.update(
            encode_metadata(
                {"storeId": request.store_id, "orderId": request.order_id or "", **request.metadata}
            )
        )
        headers = (
            {"Idempotency-Key": request.idempotency_key}
            if request.idempotency_key
            else None
        )
        data = await self._request(
            "POST", "/v1/payment_intents", form_data=form, headers=headers
        )
        logger.info("Created Stripe payment intent %s", data.get("id"))
        return self._to_intent(data)

    async def get_payment_intent(self, intent_id: str) -> Optional[PaymentIntent]:
        self._assert_ready()
        try:
            data = await self._request("GET", f"/v1/payment_intents/{intent_id}")
        except ProviderError as e:
            if e.upstream_status == 404:
                return None
            raise
        return self._to_intent(data)

    async def confirm_payment_intent(self, provider_ref: str) -> ConfirmationResult:
        self._assert_ready()
        data = await self._request("GET", f"/v1/payment_intents/{provider_ref}")
        if data.get("status") != "succeeded":
            data = await self._request(
                "POST", f"/v1/payment_intents/{provider_ref}/confirm"
            )
        return ConfirmationResult(
            provider=self.name,
            provider_ref=data["id"],
            status=_map_status(data.get("status")),
            amount_cents=int(data.get("amount") or 0),
        )

    async def refund_payment(self, request: RefundRequest) -> RefundResult:
        self._assert_ready()
        form = {"payment_intent": request.provider_ref}
        if request.amount_cents:
            form["amount"] = str(request.amount_cents)
        if request.reason:
            form["reason"] = request.reason
        form.update(encode_metadata(request.metadata))
        data = await self._request("POST", "/v1/refunds", form_data=form)
        return RefundResult(
            id=data["id"],
            provider=self.name,
            provider_ref=data.get("payment_intent") or request.provider_ref,
            status="failed" if data.get("status") == "failed" else "succeeded",
        )

    def verify_signature(self, body: bytes, signature_header: str) -> bool:
        """Check a ``Stripe-Signature`` header (``t=...,v1=...``)."""
        timestamp = None
        signatures = []
        for part in signature_header.split(","):
            key, _, value = part.strip().partition("=")
            if key == "t":
                timestamp = value
            elif key == "v1":
                signatures.append(value)
        if not timestamp or not signatures:
            return False
        try:
            if abs(time.time() - int(timestamp)) > SIGNATURE_TOLERANCE_SECONDS:
                return False
        except ValueError:
            return False

        signed_payload = f"{timestamp}.".encode() + body
        expected = hmac.new(
            self.webhook_secret.encode(), signed_payload, hashlib.sha256
        ).hexdigest()
        return any(hmac.compare_digest(expected, sig) for sig in signatures)

    async def parse_webhook_event(
        self, body: bytes, headers: Mapping[str, str]
    ) -> PaymentWebhookEvent:
        if not self.webhook_secret:
            return PaymentWebhookEvent(accepted=False, reason="Missing STRIPE_WEBHOOK_SECRET")

        shared_secret = headers.get("x-webhook-secret")
        signature = headers.get("stripe-signature")
        if shared_secret:
            verified = hmac.compare_digest(shared_secret, self.webhook_secret)
        elif signature:
            verified = self.verify_signature(body, signature)
        else:
            verified = False
        if not verified:
            logger.warning("Rejected Stripe webhook with invalid signature")
            return PaymentWebhookEvent(accepted=False, reason="Invalid webhook signature")

        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            return PaymentWebhookEvent(accepted=False, reason="Invalid JSON payload")

        if not isinstance(payload, dict):
            return PaymentWebhookEvent(accepted=False, reason="Unexpected webhook payload")
        obj = (payload.get("data") or {}).get("object") or {}
        return PaymentWebhookEvent(
            accepted=True,
            event_type=payload.get("type"),
            provider_ref=obj.get("id"),
            amount_cents=int(obj.get("amount_received") or obj.get("amount") or 0),
            raw=payload,
        )
