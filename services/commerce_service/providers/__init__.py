"""Provider factory.

``build_providers`` resolves one adapter per family from settings, once per
process. The app keeps the result on ``app.state.providers``; tests build
their own container with mock adapters.
"""

from dataclasses import dataclass
from typing import Optional

from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger
from services.commerce_service.providers.notifications import (
    MockNotificationProvider,
    NotificationProvider,
    RealNotificationProvider,
)
from services.commerce_service.providers.payments import (
    MockPaymentsProvider,
    PaymentsProvider,
    StripePaymentsProvider,
)
from services.commerce_service.providers.shipping import (
    HttpShippingProvider,
    MockShippingProvider,
    ShippingProvider,
)
from services.commerce_service.providers.tax import (
    HttpTaxProvider,
    InternalTaxProvider,
    TaxProvider,
)
from services.commerce_service.providers.webhooks import (
    MockWebhookClient,
    RealWebhookClient,
    WebhookClient,
)

logger = get_logger(__name__)


@dataclass
class Providers:
    payments: PaymentsProvider
    shipping: ShippingProvider
    tax: TaxProvider
    notifications: NotificationProvider
    webhooks: WebhookClient

    @classmethod
    def mock(cls, tax_rate: float = 0.0825) -> "Providers":
        return cls(
            payments=MockPaymentsProvider(),
            shipping=MockShippingProvider(),
            tax=InternalTaxProvider(rate=tax_rate),
            notifications=MockNotificationProvider(),
            webhooks=MockWebhookClient(),
        )


def build_payments_provider(settings: Settings) -> PaymentsProvider:
    if settings.PAYMENTS_PROVIDER == "real":
        return StripePaymentsProvider(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            api_base=settings.STRIPE_API_BASE,
            timeout=settings.PROVIDER_HTTP_TIMEOUT_SECONDS,
        )
    return MockPaymentsProvider()


def build_shipping_provider(settings: Settings) -> ShippingProvider:
    if settings.SHIPPING_PROVIDER == "real" and settings.SHIPPING_API_URL:
        return HttpShippingProvider(
            api_url=settings.SHIPPING_API_URL,
            api_key=settings.SHIPPING_API_KEY,
            webhook_secret=settings.SHIPPING_WEBHOOK_SECRET,
            timeout=settings.PROVIDER_HTTP_TIMEOUT_SECONDS,
        )
    if settings.SHIPPING_PROVIDER == "real":
        logger.warning("SHIPPING_PROVIDER=real but SHIPPING_API_URL is empty; using mock")
    return MockShippingProvider(webhook_secret=settings.SHIPPING_WEBHOOK_SECRET)


def build_tax_provider(settings: Settings) -> TaxProvider:
    if settings.TAX_PROVIDER == "real" and settings.TAX_API_URL:
        return HttpTaxProvider(
            api_url=settings.TAX_API_URL,
            api_key=settings.TAX_API_KEY,
            timeout=settings.PROVIDER_HTTP_TIMEOUT_SECONDS,
        )
    return InternalTaxProvider(rate=settings.INTERNAL_TAX_RATE)


def build_notification_provider(settings: Settings) -> NotificationProvider:
    if settings.NOTIFICATIONS_PROVIDER == "real":
        return RealNotificationProvider(
            email_from=settings.EMAIL_FROM,
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            twilio_account_sid=settings.TWILIO_ACCOUNT_SID,
            twilio_auth_token=settings.TWILIO_AUTH_TOKEN,
            sms_from=settings.SMS_FROM,
            timeout=settings.PROVIDER_HTTP_TIMEOUT_SECONDS,
        )
    return MockNotificationProvider()


def build_webhook_client(settings: Settings) -> WebhookClient:
    if settings.WEBHOOKS_PROVIDER == "real":
        return RealWebhookClient(timeout=settings.WEBHOOKS_HTTP_TIMEOUT_SECONDS)
    return MockWebhookClient()


def build_providers(settings: Optional[Settings] = None) -> Providers:
    settings = settings or get_settings()
    providers = Providers(
        payments=build_payments_provider(settings),
        shipping=build_shipping_provider(settings),
        tax=build_tax_provider(settings),
        notifications=build_notification_provider(settings),
        webhooks=build_webhook_client(settings),
    )
    logger.info(
        "Providers resolved",
        extra={
            "extra_fields": {
                "payments": providers.payments.name,
                "shipping": providers.shipping.name,
                "tax": providers.tax.name,
                "notifications": providers.notifications.name,
                "webhooks": providers.webhooks.name,
            }
        },
    )
    return providers


__all__ = [
    "Providers",
    "build_notification_provider",
    "build_payments_provider",
    "build_providers",
    "build_shipping_provider",
    "build_tax_provider",
    "build_webhook_client",
]
