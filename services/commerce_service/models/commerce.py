"""Commerce models: carts, frozen pricing snapshots, orders and payments."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import reference_number, utc_now
from libs.db.base import Base, JSONType
from services.commerce_service.models.enums import (
    CartStatus,
    OrderStatus,
    PaymentStatus,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# CART MODELS
# ============================================================================

_ACTIVE_USER_CART = text("status = 'active'")
_ACTIVE_GUEST_CART = text("status = 'active' AND user_id IS NULL")


class Cart(Base):
    """Shopping carts. At most one ACTIVE cart per user, or per guest session."""

    __tablename__ = "carts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("stores.id"), index=True, nullable=True
    )

    # Owner (user_id for logged in, session_id for guests)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), index=True, nullable=True
    )
    session_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )

    status: Mapped[CartStatus] = mapped_column(
        SAEnum(
            CartStatus,
            values_callable=enum_values,
            name="cart_status_enum",
        ),
        default=CartStatus.ACTIVE,
        server_default="active",
    )

    # Cached sum of snapshot totals; only CartService.update_cart_total writes it
    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0", nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "user_id IS NOT NULL OR session_id IS NOT NULL",
            name="cart_one_owner",
        ),
        Index(
            "uq_carts_active_user",
            "user_id",
            unique=True,
            postgresql_where=_ACTIVE_USER_CART,
            sqlite_where=_ACTIVE_USER_CART,
        ),
        Index(
            "uq_carts_active_session",
            "session_id",
            unique=True,
            postgresql_where=_ACTIVE_GUEST_CART,
            sqlite_where=_ACTIVE_GUEST_CART,
        ),
    )

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.created_at",
    )

    def __repr__(self):
        return f"<Cart {self.id} status={self.status}>"


class CartItem(Base):
    """Cart line item. Owns exactly one PricingSnapshot."""

    __tablename__ = "cart_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cart_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("carts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id"), nullable=False
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("product_variants.id"), nullable=False
    )
    design_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("designs.id"), nullable=True
    )

    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    mockup_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    decoration: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (CheckConstraint("quantity > 0", name="positive_quantity"),)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")
    variant = relationship("ProductVariant")
    design = relationship("Design")
    pricing_snapshot = relationship(
        "PricingSnapshot",
        back_populates="cart_item",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<CartItem variant={self.variant_id} qty={self.quantity}>"


class PricingSnapshot(Base):
    """Price frozen at add time. Written once, never updated."""

    __tablename__ = "pricing_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cart_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cart_items.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    base_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    color_surcharge: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    quantity_discount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    breakdown: Mapped[dict] = mapped_column(JSONType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    cart_item = relationship("CartItem", back_populates="pricing_snapshot")

    def __repr__(self):
        return f"<PricingSnapshot item={self.cart_item_id} total={self.total_price}>"


# ============================================================================
# ORDER MODELS
# ============================================================================


class Order(Base):
    """Orders materialized from a cart on payment confirmation."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(
        String(40), unique=True, nullable=False, index=True
    )

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stores.id"), index=True, nullable=False
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), index=True, nullable=True
    )
    # One order per cart, whichever intent paid for it
    cart_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("carts.id"), unique=True, nullable=True
    )
    payment_intent_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )

    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    shipping_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0"
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="USD", nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="order_status_enum",
        ),
        default=OrderStatus.PENDING,
        server_default="pending",
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            values_callable=enum_values,
            name="payment_status_enum",
        ),
        default=PaymentStatus.PENDING,
        server_default="PENDING",
    )

    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )
    payments = relationship("Payment", back_populates="order")
    production_job = relationship(
        "ProductionJob", back_populates="order", uselist=False
    )

    @staticmethod
    def generate_order_number() -> str:
        """Generate an order number like ORD-1718000000000-A1B2C."""
        return reference_number("ORD")

    def __repr__(self):
        return f"<Order {self.order_number} payment={self.payment_status}>"


class OrderItem(Base):
    """Order line item with the snapshot price copied at confirmation."""

    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id"), nullable=False
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("product_variants.id"), nullable=False
    )
    design_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("designs.id"), nullable=True
    )

    # Snapshot at order time
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    variant_sku: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    pricing_breakdown: Mapped[Optional[dict]] = mapped_column(
        JSONType, nullable=True
    )

    mockup_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    export_assets: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.variant_sku} x{self.quantity}>"


class Payment(Base):
    """One row per confirmed payment intent; transaction_id is the idempotency key."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id"), index=True, nullable=False
    )
    transaction_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="USD", nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            values_callable=enum_values,
            name="payment_record_status_enum",
        ),
        default=PaymentStatus.PAID,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    order = relationship("Order", back_populates="payments")

    def __repr__(self):
        return f"<Payment {self.transaction_id} {self.status}>"
