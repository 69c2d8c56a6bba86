"""Unit tests for the HTTP-backed provider adapters.

Requests never leave the process: every adapter gets an
``httpx.MockTransport`` that plays the upstream API.
"""

import base64
import hashlib
import hmac
import json
import time
from urllib.parse import parse_qs

import httpx
import pytest
from libs.common.logging import clear_request_context, set_request_context
from services.commerce_service.exceptions import ProviderError
from services.commerce_service.providers.notifications import (
    EmailMessage,
    RealNotificationProvider,
    SmsMessage,
)
from services.commerce_service.providers.payments import (
    INTENT_SUCCEEDED,
    PaymentIntentRequest,
    RefundRequest,
    StripePaymentsProvider,
)
from services.commerce_service.providers.shipping import (
    HttpShippingProvider,
    LabelRequest,
)
from services.commerce_service.providers.tax import HttpTaxProvider, TaxQuoteRequest
from services.commerce_service.providers.webhooks import RealWebhookClient

WEBHOOK_SECRET = "whsec_test"


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def _stripe(handler) -> StripePaymentsProvider:
    return StripePaymentsProvider(
        secret_key="sk_test_123",
        webhook_secret=WEBHOOK_SECRET,
        transport=httpx.MockTransport(handler),
    )


def _intent(status="requires_confirmation", **extra):
    body = {
        "id": "pi_123",
        "status": status,
        "amount": 2165,
        "currency": "usd",
        "client_secret": "pi_123_secret",
        "metadata": {},
    }
    body.update(extra)
    return body


# ---------------------------------------------------------------------------
# Stripe
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stripe_create_intent_encodes_form_and_metadata():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        seen["form"] = _form(request)
        metadata = {
            k[len("metadata[") : -1]: v
            for k, v in seen["form"].items()
            if k.startswith("metadata[")
        }
        return httpx.Response(200, json=_intent(metadata=metadata))

    provider = _stripe(handler)
    intent = await provider.create_payment_intent(
        PaymentIntentRequest(
            store_id="store-1",
            amount_cents=2165,
            currency="USD",
            metadata={
                "cartId": "cart-9",
                "userId": None,
                "shipping": {"name": "Ada", "address": {"city": "Austin"}},
                "taxCents": 165,
            },
            idempotency_key="checkout-cart-9",
        )
    )

    request = seen["request"]
    assert request.method == "POST"
    assert request.url.path == "/v1/payment_intents"
    assert request.headers["Authorization"] == "Bearer sk_test_123"
    assert request.headers["Idempotency-Key"] == "checkout-cart-9"
    assert seen["form"]["amount"] == "2165"
    assert seen["form"]["currency"] == "usd"
    assert "metadata[userId]" not in seen["form"]
    assert json.loads(seen["form"]["metadata[shipping]"])["address"]["city"] == "Austin"

    assert intent.id == "pi_123"
    assert intent.currency == "USD"
    assert intent.metadata["shipping"] == {"name": "Ada", "address": {"city": "Austin"}}
    assert intent.metadata["taxCents"] == "165"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stripe_get_missing_intent_returns_none():
    def handler(request):
        return httpx.Response(404, json={"error": {"message": "No such payment_intent"}})

    assert await _stripe(handler).get_payment_intent("pi_missing") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_provider_calls_forward_the_request_id():
    seen = {}

    def handler(request):
        seen["request_id"] = request.headers.get("X-Request-ID")
        return httpx.Response(200, json=_intent(status=INTENT_SUCCEEDED))

    set_request_context(request_id="req-42", path="/checkout/confirm", method="POST")
    try:
        await _stripe(handler).get_payment_intent("pi_123")
    finally:
        clear_request_context()

    assert seen["request_id"] == "req-42"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stripe_confirm_posts_only_when_not_yet_succeeded():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path))
        if request.method == "GET":
            return httpx.Response(200, json=_intent("requires_confirmation"))
        return httpx.Response(200, json=_intent("succeeded"))

    result = await _stripe(handler).confirm_payment_intent("pi_123")

    assert result.status == INTENT_SUCCEEDED
    assert calls == [
        ("GET", "/v1/payment_intents/pi_123"),
        ("POST", "/v1/payment_intents/pi_123/confirm"),
    ]

    calls.clear()

    def already_paid(request):
        calls.append((request.method, request.url.path))
        return httpx.Response(200, json=_intent("succeeded"))

    await _stripe(already_paid).confirm_payment_intent("pi_123")
    assert calls == [("GET", "/v1/payment_intents/pi_123")]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stripe_refund():
    def handler(request):
        assert request.url.path == "/v1/refunds"
        form = _form(request)
        assert form["payment_intent"] == "pi_123"
        assert form["amount"] == "500"
        return httpx.Response(
            200, json={"id": "re_1", "payment_intent": "pi_123", "status": "succeeded"}
        )

    refund = await _stripe(handler).refund_payment(
        RefundRequest(provider_ref="pi_123", amount_cents=500)
    )

    assert refund.id == "re_1"
    assert refund.status == "succeeded"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stripe_errors_become_provider_errors():
    def server_error(request):
        return httpx.Response(500, json={"error": {"message": "upstream down"}})

    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderError) as exc_info:
        await _stripe(server_error).get_payment_intent("pi_123")
    assert exc_info.value.upstream_status == 500
    assert "upstream down" in exc_info.value.message

    with pytest.raises(ProviderError):
        await _stripe(unreachable).get_payment_intent("pi_123")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stripe_requires_secret_key():
    provider = StripePaymentsProvider(secret_key="")

    with pytest.raises(ProviderError):
        await provider.create_payment_intent(
            PaymentIntentRequest(store_id="s", amount_cents=100)
        )
    assert (await provider.healthcheck()).ok is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stripe_webhook_signature():
    provider = StripePaymentsProvider(secret_key="sk", webhook_secret=WEBHOOK_SECRET)
    body = json.dumps(
        {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_123", "amount_received": 2165}},
        }
    ).encode()
    timestamp = str(int(time.time()))
    digest = hmac.new(
        WEBHOOK_SECRET.encode(), f"{timestamp}.".encode() + body, hashlib.sha256
    ).hexdigest()

    signed = await provider.parse_webhook_event(
        body, {"stripe-signature": f"t={timestamp},v1={digest}"}
    )
    shared = await provider.parse_webhook_event(body, {"x-webhook-secret": WEBHOOK_SECRET})
    forged = await provider.parse_webhook_event(
        body, {"stripe-signature": f"t={timestamp},v1={'0' * 64}"}
    )
    stale = await provider.parse_webhook_event(
        body, {"stripe-signature": f"t={int(time.time()) - 3600},v1={digest}"}
    )

    assert signed.accepted
    assert signed.event_type == "payment_intent.succeeded"
    assert signed.provider_ref == "pi_123"
    assert signed.amount_cents == 2165
    assert shared.accepted
    assert not forged.accepted
    assert not stale.accepted


# ---------------------------------------------------------------------------
# Shipping and tax APIs
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_http_shipping_label():
    def handler(request):
        assert request.url.path == "/labels"
        assert json.loads(request.content)["rateId"] == "rate_1"
        return httpx.Response(
            200,
            json={
                "providerRef": "shp_1",
                "trackingNumber": "1Z999",
                "carrier": "UPS",
                "serviceLevel": "GROUND",
                "events": [{"eventType": "LABEL_CREATED", "status": "label_created"}],
            },
        )

    provider = HttpShippingProvider(
        api_url="https://ship.example.test", transport=httpx.MockTransport(handler)
    )
    label = await provider.create_label(
        LabelRequest(store_id="s", order_id="o", rate_id="rate_1")
    )

    assert label.tracking_number == "1Z999"
    assert label.status == "label_created"
    assert label.events[0].event_type == "LABEL_CREATED"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_http_shipping_label_without_tracking_number_fails():
    provider = HttpShippingProvider(
        api_url="https://ship.example.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
    )

    with pytest.raises(ProviderError):
        await provider.create_label(LabelRequest(store_id="s", order_id="o"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_http_tax_quote():
    def handler(request):
        payload = json.loads(request.content)
        assert payload["subtotalCents"] == 2000
        assert request.headers["Authorization"] == "Bearer tax-key"
        return httpx.Response(200, json={"taxCents": 150})

    provider = HttpTaxProvider(
        api_url="https://tax.example.test",
        api_key="tax-key",
        transport=httpx.MockTransport(handler),
    )
    quote = await provider.calculate_tax(
        TaxQuoteRequest(store_id="s", subtotal_cents=2000)
    )

    assert quote.tax_cents == 150
    assert quote.total_cents == 2150


@pytest.mark.asyncio
@pytest.mark.unit
async def test_http_tax_quote_requires_tax_cents():
    provider = HttpTaxProvider(
        api_url="https://tax.example.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
    )

    with pytest.raises(ProviderError):
        await provider.calculate_tax(TaxQuoteRequest(store_id="s", subtotal_cents=1))


# ---------------------------------------------------------------------------
# Outbound webhooks and notifications
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_real_webhook_client_posts_json():
    received = {}

    def handler(request):
        received["body"] = json.loads(request.content)
        received["event"] = request.headers["X-Event-Type"]
        return httpx.Response(204)

    client = RealWebhookClient(transport=httpx.MockTransport(handler))
    delivery = await client.post(
        "https://hooks.example.test/orders", {"X-Event-Type": "order.paid"}, {"a": 1}
    )

    assert delivery.status == 204
    assert received == {"body": {"a": 1}, "event": "order.paid"}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_real_webhook_client_rejects_non_2xx_and_empty_url():
    client = RealWebhookClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(503))
    )

    with pytest.raises(ProviderError) as exc_info:
        await client.post("https://hooks.example.test", {}, {})
    assert exc_info.value.upstream_status == 503

    with pytest.raises(ProviderError):
        await client.post("", {}, {})


@pytest.mark.asyncio
@pytest.mark.unit
async def test_twilio_sms_uses_basic_auth():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["form"] = _form(request)
        return httpx.Response(201, json={"sid": "SM123"})

    provider = RealNotificationProvider(
        twilio_account_sid="AC1",
        twilio_auth_token="token",
        sms_from="+15550000",
        transport=httpx.MockTransport(handler),
    )
    receipt = await provider.send_sms(SmsMessage(to="+15550100", body="Shipped"))

    expected_auth = "Basic " + base64.b64encode(b"AC1:token").decode()
    assert seen["path"] == "/2010-04-01/Accounts/AC1/Messages.json"
    assert seen["auth"] == expected_auth
    assert seen["form"] == {"To": "+15550100", "From": "+15550000", "Body": "Shipped"}
    assert receipt.message_id == "SM123"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_real_notifications_require_configuration():
    provider = RealNotificationProvider()

    with pytest.raises(ProviderError):
        await provider.send_email(EmailMessage(to="a@test.com", subject="s", body="b"))
    with pytest.raises(ProviderError):
        await provider.send_sms(SmsMessage(to="+1", body="b"))
