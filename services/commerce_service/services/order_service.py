"""Order materialization, payment status transitions and refunds."""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.currency import ZERO, dollars_to_cents, round2, to_decimal
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.commerce_service.exceptions import (
    CartClosedError,
    EmptyCartError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from services.commerce_service.models import (
    Cart,
    CartItem,
    CartStatus,
    Order,
    OrderItem,
    PaymentStatus,
    ProductionJob,
)
from services.commerce_service.providers.payments import (
    PaymentsProvider,
    RefundRequest,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

# PAID never goes back to PENDING; REFUNDED is terminal.
ALLOWED_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}


def export_assets_for(design) -> Optional[list[dict]]:
    if design is None:
        return None
    assets = []
    if design.vector_url:
        assets.append({"type": "VECTOR", "url": design.vector_url})
    if design.exported_image_url:
        assets.append({"type": "PNG", "url": design.exported_image_url})
    return assets or None


class OrderService:
    def __init__(self, payments: Optional[PaymentsProvider] = None):
        self.payments = payments

    async def create_order(
        self,
        db: AsyncSession,
        *,
        store_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        cart_id: uuid.UUID,
        shipping: Optional[dict] = None,
        payment_intent_id: Optional[str] = None,
        tax_amount: Decimal = ZERO,
        currency: str = "USD",
        commit: bool = True,
    ) -> Order:
        """Materialize an order from the cart's frozen snapshots and mark the cart CONVERTED.

        With ``commit=False`` the rows are only flushed so the caller can
        finish its own transaction.
        """
        result = await db.execute(
            select(Cart)
            .where(Cart.id == cart_id)
            .options(
                selectinload(Cart.items).selectinload(CartItem.pricing_snapshot),
                selectinload(Cart.items).selectinload(CartItem.product),
                selectinload(Cart.items).selectinload(CartItem.variant),
                selectinload(Cart.items).selectinload(CartItem.design),
            )
            .execution_options(populate_existing=True)
        )
        cart = result.scalar_one_or_none()
        if cart is None or not cart.items:
            raise EmptyCartError(cart_id)
        if cart.status != CartStatus.ACTIVE:
            raise CartClosedError(cart.id, cart.status)

        shipping = shipping or {}
        subtotal = round2(
            sum((to_decimal(i.pricing_snapshot.total_price) for i in cart.items), ZERO)
        )
        tax_amount = round2(tax_amount)

        order = Order(
            id=uuid.uuid4(),
            order_number=Order.generate_order_number(),
            store_id=store_id,
            user_id=user_id,
            cart_id=cart.id,
            payment_intent_id=payment_intent_id,
            customer_email=shipping.get("email"),
            customer_name=shipping.get("name"),
            shipping_address=shipping.get("address"),
            subtotal=subtotal,
            tax_amount=tax_amount,
            total_amount=round2(subtotal + tax_amount),
            currency=currency,
            payment_status=PaymentStatus.PENDING,
        )

        for cart_item in cart.items:
            snapshot = cart_item.pricing_snapshot
            line_total = round2(snapshot.total_price)
            order.items.append(
                OrderItem(
                    product_id=cart_item.product_id,
                    variant_id=cart_item.variant_id,
                    design_id=cart_item.design_id,
                    product_name=cart_item.product.name,
                    variant_sku=cart_item.variant.sku,
                    quantity=cart_item.quantity,
                    unit_price=round2(line_total / cart_item.quantity),
                    line_total=line_total,
                    pricing_breakdown=dict(snapshot.breakdown or {}),
                    mockup_url=cart_item.mockup_url,
                    export_assets=export_assets_for(cart_item.design),
                )
            )

        cart.status = CartStatus.CONVERTED
        db.add(order)
        await db.flush()

        logger.info(
            "Materialized order %s from cart %s",
            order.order_number,
            cart_id,
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "items": len(order.items),
                    "total": str(order.total_amount),
                }
            },
        )

        if commit:
            await db.commit()
        return order

    async def get_order(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        store_id: Optional[uuid.UUID] = None,
    ) -> Order:
        query = (
            select(Order)
            .where(Order.id == order_id)
            .options(
                selectinload(Order.items),
                selectinload(Order.payments),
                selectinload(Order.production_job).selectinload(ProductionJob.steps),
                selectinload(Order.production_job).selectinload(ProductionJob.shipments),
            )
            .execution_options(populate_existing=True)
        )
        if store_id:
            query = query.where(Order.store_id == store_id)
        result = await db.execute(query)
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def list_store_orders(
        self,
        db: AsyncSession,
        store_id: uuid.UUID,
        payment_status: Optional[PaymentStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> list[Order]:
        query = select(Order).where(Order.store_id == store_id)
        if payment_status:
            query = query.where(Order.payment_status == payment_status)
        query = (
            query.options(selectinload(Order.items))
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def update_payment_status(
        self,
        db: AsyncSession,
        order: Order,
        status: PaymentStatus,
        commit: bool = True,
    ) -> Order:
        current = order.payment_status
        if current == status:
            return order
        if status not in ALLOWED_PAYMENT_TRANSITIONS.get(current, set()):
            raise ValidationError(
                f"Cannot move payment status from {current.value} to {status.value}",
                {"order_id": str(order.id)},
            )
        order.payment_status = status
        if status == PaymentStatus.PAID:
            order.paid_at = utc_now()
        if commit:
            await db.commit()
        return order

    async def refund_order(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> Order:
        """Refund a PAID order through the payments provider. PAID -> REFUNDED only."""
        if self.payments is None:
            raise ProviderError("payments", "no payments provider configured")

        order = await self.get_order(db, order_id)
        if order.payment_status != PaymentStatus.PAID:
            raise ValidationError(
                "Only PAID orders can be refunded",
                {"order_id": str(order_id), "payment_status": order.payment_status.value},
            )
        payment = next(
            (p for p in order.payments if p.status == PaymentStatus.PAID), None
        )
        if payment is None:
            raise NotFoundError("Payment", order_id)

        refund_amount = round2(amount) if amount is not None else payment.amount
        refund = await self.payments.refund_payment(
            RefundRequest(
                provider_ref=payment.transaction_id,
                amount_cents=dollars_to_cents(refund_amount),
                reason=reason,
                metadata={"orderId": str(order.id)},
            )
        )
        if refund.status != "succeeded":
            raise ProviderError(refund.provider, "refund was not accepted")

        payment.status = PaymentStatus.REFUNDED
        await self.update_payment_status(db, order, PaymentStatus.REFUNDED, commit=False)
        await db.commit()

        logger.info(
            "Refunded order %s",
            order.order_number,
            extra={
                "extra_fields": {
                    "order_id": str(order.id),
                    "refund_id": refund.id,
                    "amount": str(refund_amount),
                }
            },
        )
        return order
