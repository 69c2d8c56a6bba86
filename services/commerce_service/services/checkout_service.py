"""Checkout state machine.

CART_VALIDATED -> INTENT_CREATED -> {CONFIRMED | FAILED}
    -> ORDER_MATERIALIZED -> PRODUCTION_JOB_CREATED

The payment intent's metadata is the only carrier of checkout context
between ``start_checkout`` and ``handle_confirmation``. Materialization
(order, items, production job, payment row, payment status) runs in a
single transaction; notifications and outbound webhooks fire after commit.
"""

import enum
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from libs.common.currency import ZERO, cents_to_dollars, dollars_to_cents, round2, to_decimal
from libs.common.logging import get_logger
from services.commerce_service.exceptions import (
    CartClosedError,
    CheckoutFailedError,
    EmptyCartError,
    NotFoundError,
    ProviderError,
    ValidationError,
    WebhookRejectedError,
)
from services.commerce_service.models import (
    Cart,
    CartItem,
    CartStatus,
    Order,
    Payment,
    PaymentStatus,
    Store,
)
from services.commerce_service.providers.notifications import (
    EmailMessage,
    NotificationProvider,
)
from services.commerce_service.providers.payments import (
    INTENT_FAILED,
    INTENT_SUCCEEDED,
    PaymentIntentRequest,
    PaymentsProvider,
)
from services.commerce_service.providers.tax import TaxProvider, TaxQuoteRequest
from services.commerce_service.providers.webhooks import WebhookClient
from services.commerce_service.services.order_service import OrderService
from services.commerce_service.services.production_service import ProductionService
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

SUCCESS_EVENT_TYPES = frozenset({"payment_succeeded", "payment_intent.succeeded"})


class CheckoutState(str, enum.Enum):
    CART_VALIDATED = "CART_VALIDATED"
    INTENT_CREATED = "INTENT_CREATED"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    ORDER_MATERIALIZED = "ORDER_MATERIALIZED"
    PRODUCTION_JOB_CREATED = "PRODUCTION_JOB_CREATED"


@dataclass(frozen=True)
class CheckoutPayload:
    store_id: uuid.UUID
    cart_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    shipping: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckoutStartResult:
    provider: str
    intent_id: str
    client_secret: Optional[str]
    status: str


@dataclass(frozen=True)
class ConfirmationResult:
    status: str
    order_id: Optional[uuid.UUID] = None


def _uuid_or_none(value: Any) -> Optional[uuid.UUID]:
    if value in (None, "", "null"):
        return None
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _ref(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


class CheckoutService:
    def __init__(
        self,
        payments: PaymentsProvider,
        tax: TaxProvider,
        notifications: NotificationProvider,
        webhooks: WebhookClient,
        order_service: Optional[OrderService] = None,
        production_service: Optional[ProductionService] = None,
    ):
        self.payments = payments
        self.tax = tax
        self.notifications = notifications
        self.webhooks = webhooks
        self.order_service = order_service or OrderService(payments=payments)
        self.production_service = production_service or ProductionService()

    def select_payments_provider(self, store_id: uuid.UUID) -> PaymentsProvider:
        """Per-store override point. Every store uses the injected provider today."""
        return self.payments

    def _transition(self, state: CheckoutState, **fields: Any) -> None:
        logger.info(
            "Checkout -> %s",
            state.value,
            extra={
                "extra_fields": {
                    "checkout_state": state.value,
                    **{k: str(v) if v is not None else None for k, v in fields.items()},
                }
            },
        )

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start_checkout(
        self, db: AsyncSession, payload: CheckoutPayload
    ) -> CheckoutStartResult:
        result = await db.execute(
            select(Cart)
            .where(Cart.id == payload.cart_id)
            .options(selectinload(Cart.items).selectinload(CartItem.pricing_snapshot))
            .execution_options(populate_existing=True)
        )
        cart = result.scalar_one_or_none()
        if cart is None or not cart.items:
            raise EmptyCartError(payload.cart_id)
        if cart.status != CartStatus.ACTIVE:
            raise CartClosedError(cart.id, cart.status)
        if cart.store_id is not None and cart.store_id != payload.store_id:
            raise ValidationError(
                "Cart belongs to a different store",
                {"cart_id": str(cart.id), "store_id": str(payload.store_id)},
            )
        self._transition(
            CheckoutState.CART_VALIDATED, cart_id=cart.id, store_id=payload.store_id
        )

        store = await db.get(Store, payload.store_id)
        if store is None:
            raise NotFoundError("Store", payload.store_id)

        subtotal = round2(
            sum((to_decimal(i.pricing_snapshot.total_price) for i in cart.items), ZERO)
        )
        subtotal_cents = dollars_to_cents(subtotal)
        tax_quote = await self.tax.calculate_tax(
            TaxQuoteRequest(
                store_id=str(payload.store_id),
                subtotal_cents=subtotal_cents,
                destination=(payload.shipping or {}).get("address") or {},
            )
        )

        provider = self.select_payments_provider(payload.store_id)
        intent = await provider.create_payment_intent(
            PaymentIntentRequest(
                store_id=str(payload.store_id),
                amount_cents=subtotal_cents + tax_quote.tax_cents,
                currency=store.currency,
                metadata={
                    "storeId": str(payload.store_id),
                    "userId": str(payload.user_id) if payload.user_id else None,
                    "cartId": str(cart.id),
                    "shipping": payload.shipping or {},
                    "taxCents": tax_quote.tax_cents,
                },
                idempotency_key=f"checkout-{cart.id}-{subtotal_cents}",
            )
        )
        self._transition(
            CheckoutState.INTENT_CREATED,
            intent_id=intent.id,
            cart_id=cart.id,
            amount_cents=intent.amount_cents,
        )

        return CheckoutStartResult(
            provider=intent.provider,
            intent_id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
        )

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def _existing_order_id(
        self,
        db: AsyncSession,
        intent_id: str,
        cart_id: Optional[uuid.UUID] = None,
    ) -> Optional[uuid.UUID]:
        """Order already materialized for this intent, or for this cart by another intent."""
        payment = (
            await db.execute(select(Payment).where(Payment.transaction_id == intent_id))
        ).scalar_one_or_none()
        if payment is not None:
            return payment.order_id
        order = (
            await db.execute(select(Order).where(Order.payment_intent_id == intent_id))
        ).scalar_one_or_none()
        if order is None and cart_id is not None:
            order = (
                await db.execute(select(Order).where(Order.cart_id == cart_id))
            ).scalar_one_or_none()
        return order.id if order is not None else None

    @staticmethod
    def _checkout_context(
        intent_id: str, metadata: Mapping[str, Any]
    ) -> tuple[uuid.UUID, uuid.UUID, Optional[uuid.UUID]]:
        try:
            store_id = _uuid_or_none(metadata.get("storeId"))
            cart_id = _uuid_or_none(metadata.get("cartId"))
            user_id = _uuid_or_none(metadata.get("userId"))
        except ValueError as exc:
            raise ValidationError(
                f"Payment intent metadata is malformed: {exc}",
                {"intent_id": intent_id},
            ) from exc
        if store_id is None or cart_id is None:
            raise ValidationError(
                "Payment intent metadata is missing checkout context",
                {"intent_id": intent_id},
            )
        return store_id, cart_id, user_id

    async def handle_confirmation(
        self, db: AsyncSession, intent_id: str
    ) -> ConfirmationResult:
        """Confirm the intent and materialize the order exactly once.

        Once the provider reports the payment succeeded, every failure
        (including unusable metadata) surfaces as ``CheckoutFailedError``
        with ``payment_succeeded=True``.
        """
        provider = self.payments
        intent = await provider.get_payment_intent(intent_id)
        if intent is None:
            raise NotFoundError("PaymentIntent", intent_id)

        existing = await self._existing_order_id(db, intent_id)
        if existing is not None:
            logger.info("Intent %s already materialized as order %s", intent_id, existing)
            return ConfirmationResult(status="ok", order_id=existing)

        confirmation = await provider.confirm_payment_intent(intent.provider_ref)
        if confirmation.status != INTENT_SUCCEEDED:
            if confirmation.status == INTENT_FAILED:
                self._transition(CheckoutState.FAILED, intent_id=intent_id)
            else:
                logger.info(
                    "Intent %s not settled yet: %s", intent_id, confirmation.status
                )
            return ConfirmationResult(status="pending")
        self._transition(CheckoutState.CONFIRMED, intent_id=intent_id)

        metadata = intent.metadata or {}
        store_ref = metadata.get("storeId")
        cart_ref = metadata.get("cartId")
        cart_id = None

        try:
            store_id, cart_id, user_id = self._checkout_context(intent_id, metadata)

            cart_order = await self._existing_order_id(db, intent_id, cart_id=cart_id)
            if cart_order is not None:
                # A second intent paid for a cart that already became an order
                logger.warning(
                    "Intent %s paid for cart %s already materialized as order %s; "
                    "payment needs reconciliation",
                    intent_id,
                    cart_id,
                    cart_order,
                    extra={
                        "extra_fields": {
                            "intent_id": intent_id,
                            "cart_id": str(cart_id),
                            "store_id": str(store_id),
                            "order_id": str(cart_order),
                        }
                    },
                )
                return ConfirmationResult(status="ok", order_id=cart_order)

            shipping = metadata.get("shipping") or {}
            tax_amount = cents_to_dollars(int(metadata.get("taxCents") or 0))

            order = await self.order_service.create_order(
                db,
                store_id=store_id,
                user_id=user_id,
                cart_id=cart_id,
                shipping=shipping if isinstance(shipping, dict) else {},
                payment_intent_id=intent_id,
                tax_amount=tax_amount,
                currency=intent.currency,
                commit=False,
            )
            self._transition(
                CheckoutState.ORDER_MATERIALIZED, intent_id=intent_id, order_id=order.id
            )

            job = await self.production_service.create_production_job(
                db, order.id, commit=False
            )

            db.add(
                Payment(
                    order_id=order.id,
                    transaction_id=intent_id,
                    provider=intent.provider,
                    amount=order.total_amount,
                    currency=order.currency,
                    status=PaymentStatus.PAID,
                )
            )
            await self.order_service.update_payment_status(
                db, order, PaymentStatus.PAID, commit=False
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            winner = await self._existing_order_id(db, intent_id, cart_id=cart_id)
            if winner is None:
                logger.error(
                    "Integrity error materializing intent %s with no winning order",
                    intent_id,
                )
                raise
            logger.info("Concurrent confirmation of %s lost to order %s", intent_id, winner)
            return ConfirmationResult(status="ok", order_id=winner)
        except Exception as exc:
            await db.rollback()
            logger.error(
                "Order materialization failed after successful payment",
                exc_info=True,
                extra={
                    "extra_fields": {
                        "intent_id": intent_id,
                        "cart_id": _ref(cart_ref),
                        "store_id": _ref(store_ref),
                    }
                },
            )
            raise CheckoutFailedError(
                "Payment succeeded but the order could not be created",
                intent_id=intent_id,
                cart_id=_ref(cart_ref),
                store_id=_ref(store_ref),
                payment_succeeded=True,
                cause=exc,
            ) from exc

        self._transition(
            CheckoutState.PRODUCTION_JOB_CREATED,
            intent_id=intent_id,
            order_id=order.id,
            job_number=job.job_number,
        )

        await self._notify_paid(db, order)
        return ConfirmationResult(status="ok", order_id=order.id)

    async def _notify_paid(self, db: AsyncSession, order: Order) -> None:
        """Post-commit side effects. Failures are logged; the order stands."""
        if order.customer_email:
            try:
                await self.notifications.send_email(
                    EmailMessage(
                        to=order.customer_email,
                        subject=f"Order {order.order_number} confirmed",
                        body=(
                            f"Thanks for your order {order.order_number}. "
                            f"Total charged: {order.total_amount} {order.currency}."
                        ),
                    )
                )
            except ProviderError as exc:
                logger.warning(
                    "Order confirmation email failed for %s: %s", order.order_number, exc
                )

        store = await db.get(Store, order.store_id)
        if store is None or not store.webhook_url:
            return
        try:
            await self.webhooks.post(
                store.webhook_url,
                {"X-Event-Type": "order.paid"},
                {
                    "event": "order.paid",
                    "orderId": str(order.id),
                    "orderNumber": order.order_number,
                    "storeId": str(order.store_id),
                    "totalAmount": str(order.total_amount),
                    "currency": order.currency,
                },
            )
        except ProviderError as exc:
            logger.warning(
                "order.paid webhook failed for %s: %s", order.order_number, exc
            )

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def handle_webhook(
        self, db: AsyncSession, body: bytes, headers: Mapping[str, str]
    ) -> ConfirmationResult:
        event = await self.payments.parse_webhook_event(body, headers)
        if not event.accepted:
            logger.warning("Rejected payments webhook: %s", event.reason)
            raise WebhookRejectedError(
                self.payments.name, event.reason or "webhook rejected"
            )

        if event.event_type not in SUCCESS_EVENT_TYPES or not event.provider_ref:
            logger.info("Ignoring payments webhook event %s", event.event_type)
            return ConfirmationResult(status="ignored")

        return await self.handle_confirmation(db, event.provider_ref)
