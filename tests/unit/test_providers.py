"""Unit tests for the in-memory provider adapters and provider selection."""

import json
from decimal import Decimal

import pytest
from libs.common.config import Settings
from services.commerce_service.providers import Providers, build_providers
from services.commerce_service.providers.notifications import (
    EmailMessage,
    MockNotificationProvider,
    RealNotificationProvider,
    SmsMessage,
)
from services.commerce_service.providers.payments import (
    INTENT_REQUIRES_CONFIRMATION,
    INTENT_SUCCEEDED,
    MockPaymentsProvider,
    PaymentIntentRequest,
    RefundRequest,
    StripePaymentsProvider,
)
from services.commerce_service.providers.shipping import (
    HttpShippingProvider,
    LabelRequest,
    MockShippingProvider,
    RateRequest,
)
from services.commerce_service.providers.tax import (
    HttpTaxProvider,
    InternalTaxProvider,
    TaxQuoteRequest,
)
from services.commerce_service.providers.webhooks import (
    MockWebhookClient,
    RealWebhookClient,
)

# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mock_intent_round_trips_metadata():
    provider = MockPaymentsProvider()
    metadata = {"cartId": "c-1", "shipping": {"address": {"city": "Austin"}}}

    intent = await provider.create_payment_intent(
        PaymentIntentRequest(store_id="store-1", amount_cents=2599, metadata=metadata)
    )
    fetched = await provider.get_payment_intent(intent.id)

    assert intent.status == INTENT_REQUIRES_CONFIRMATION
    assert intent.id.startswith("mock_pi_store1_2599_")
    assert fetched.metadata == metadata
    # Mutating the caller's dict after creation does not leak into the intent
    metadata["shipping"]["address"]["city"] = "Dallas"
    assert (await provider.get_payment_intent(intent.id)).metadata["shipping"][
        "address"
    ]["city"] == "Austin"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mock_intent_honors_idempotency_key():
    provider = MockPaymentsProvider()
    request = PaymentIntentRequest(
        store_id="s", amount_cents=500, idempotency_key="checkout-c1-500"
    )

    first = await provider.create_payment_intent(request)
    again = await provider.create_payment_intent(request)
    other = await provider.create_payment_intent(
        PaymentIntentRequest(store_id="s", amount_cents=500)
    )

    assert again.id == first.id
    assert other.id != first.id
    assert len(provider.intents) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mock_confirmation_follows_configuration():
    provider = MockPaymentsProvider()
    failing = await provider.create_payment_intent(
        PaymentIntentRequest(store_id="s", amount_cents=100)
    )
    provider.configure(should_succeed=False)
    assert (await provider.confirm_payment_intent(failing.id)).status == "failed"

    provider.configure(should_succeed=True)
    ok = await provider.confirm_payment_intent(failing.id)
    assert ok.status == INTENT_SUCCEEDED
    assert ok.amount_cents == 100

    # A succeeded intent stays succeeded
    provider.configure(should_succeed=False)
    assert (await provider.confirm_payment_intent(failing.id)).status == INTENT_SUCCEEDED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mock_unknown_intent_is_none():
    assert await MockPaymentsProvider().get_payment_intent("nope") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mock_refund_and_webhook_parsing():
    provider = MockPaymentsProvider()

    refund = await provider.refund_payment(RefundRequest(provider_ref="mock_pi_x"))
    accepted = await provider.parse_webhook_event(
        json.dumps({"event": "payment_succeeded", "providerRef": "mock_pi_x"}).encode(),
        {},
    )
    rejected = await provider.parse_webhook_event(b"{not json", {})

    assert refund.status == "succeeded"
    assert accepted.accepted and accepted.provider_ref == "mock_pi_x"
    assert not rejected.accepted


# ---------------------------------------------------------------------------
# Shipping / tax / notifications / webhooks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mock_shipping_is_deterministic():
    provider = MockShippingProvider()

    rates = await provider.get_rates(RateRequest(store_id="s", order_id="o"))
    label = await provider.create_label(
        LabelRequest(store_id="s", order_id="ord-1234-abcd-ef56", rate_id="mock_rate_express")
    )

    assert [r.amount_cents for r in rates] == [1299, 2499]
    assert label.tracking_number == "MOCKTRACKABCDEF56"
    assert label.service_level == "EXPRESS"
    assert label.events[0].to_dict()["eventType"] == "LABEL_CREATED"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_shipping_webhook_secret_is_enforced():
    provider = MockShippingProvider(webhook_secret="s3cret")
    body = json.dumps({"trackingNumber": "T1", "status": "delivered"}).encode()

    denied = await provider.parse_webhook_event(body, {"x-webhook-secret": "wrong"})
    allowed = await provider.parse_webhook_event(body, {"x-webhook-secret": "s3cret"})

    assert not denied.accepted
    assert allowed.accepted and allowed.status == "delivered"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_internal_tax_rounds_half_up():
    provider = InternalTaxProvider(rate=0.0825)

    quote = await provider.calculate_tax(
        TaxQuoteRequest(store_id="s", subtotal_cents=1000, shipping_cents=200)
    )

    # 1200 * 0.0825 = 99.0
    assert quote.tax_cents == 99
    assert quote.total_cents == 1299
    assert (
        await provider.calculate_tax(TaxQuoteRequest(store_id="s", subtotal_cents=1006))
    ).tax_cents == 83


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mock_notifications_and_webhooks_record_messages():
    notifications = MockNotificationProvider()
    webhooks = MockWebhookClient()

    receipt = await notifications.send_email(
        EmailMessage(to="a@test.com", subject="Hi", body="Body")
    )
    await notifications.send_sms(SmsMessage(to="+15550100", body="Shipped"))
    delivery = await webhooks.post("https://hooks.test", {"X-Event-Type": "t"}, {"a": 1})

    assert receipt.accepted and receipt.channel == "email"
    assert len(notifications.outbox) == 2
    assert delivery.status == 200
    assert webhooks.deliveries[0]["body"] == {"a": 1}


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_defaults_resolve_to_mock_adapters():
    providers = build_providers(Settings(_env_file=None))

    assert isinstance(providers.payments, MockPaymentsProvider)
    assert isinstance(providers.shipping, MockShippingProvider)
    assert isinstance(providers.tax, InternalTaxProvider)
    assert isinstance(providers.notifications, MockNotificationProvider)
    assert isinstance(providers.webhooks, MockWebhookClient)


@pytest.mark.unit
def test_unknown_mode_means_mock():
    settings = Settings(_env_file=None, PAYMENTS_PROVIDER="stripe-ish")

    assert settings.PAYMENTS_PROVIDER == "mock"


@pytest.mark.unit
def test_real_modes_resolve_real_adapters():
    settings = Settings(
        _env_file=None,
        PAYMENTS_PROVIDER="REAL",
        SHIPPING_PROVIDER="real",
        TAX_PROVIDER="real",
        NOTIFICATIONS_PROVIDER="real",
        WEBHOOKS_PROVIDER="real",
        STRIPE_SECRET_KEY="sk_test_123",
        SHIPPING_API_URL="https://ship.example.test",
        TAX_API_URL="https://tax.example.test",
    )

    providers = build_providers(settings)

    assert isinstance(providers.payments, StripePaymentsProvider)
    assert isinstance(providers.shipping, HttpShippingProvider)
    assert isinstance(providers.tax, HttpTaxProvider)
    assert isinstance(providers.notifications, RealNotificationProvider)
    assert isinstance(providers.webhooks, RealWebhookClient)


@pytest.mark.unit
def test_real_shipping_and_tax_without_urls_fall_back():
    settings = Settings(_env_file=None, SHIPPING_PROVIDER="real", TAX_PROVIDER="real")

    providers = build_providers(settings)

    assert isinstance(providers.shipping, MockShippingProvider)
    assert isinstance(providers.tax, InternalTaxProvider)


@pytest.mark.unit
def test_mock_container():
    providers = Providers.mock(tax_rate=0.05)

    assert providers.tax.rate == Decimal("0.05")
