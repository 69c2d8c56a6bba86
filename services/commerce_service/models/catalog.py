"""Catalog models: stores, users, products, variants, rules and rate tables."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.commerce_service.models.enums import QuoteRuleMethod, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# TENANTS
# ============================================================================


class Store(Base):
    """A tenant storefront."""

    __tablename__ = "stores"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="USD", nullable=False)

    # Receives an "order.paid" event when checkout completes
    webhook_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    products = relationship("Product", back_populates="store")

    def __repr__(self):
        return f"<Store {self.slug}>"


class User(Base):
    """A shopper account."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tax_exempt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<User {self.email}>"


# ============================================================================
# PRODUCTS
# ============================================================================


class Product(Base):
    """Decoratable blank product (tee, hoodie, cap...)."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stores.id"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    store = relationship("Store", back_populates="products")
    variants = relationship(
        "ProductVariant", back_populates="product", cascade="all, delete-orphan"
    )
    pricing_rules = relationship(
        "PricingRule", back_populates="product", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Product {self.name}>"


class ProductVariant(Base):
    """Sellable size/color variant. Never edited once a snapshot references it."""

    __tablename__ = "product_variants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False
    )
    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    size: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Blank cost from the supplier; falls back to product.base_price
    supplier_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    weight_oz: Mapped[Optional[Decimal]] = mapped_column(Numeric(8, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    product = relationship("Product", back_populates="variants")

    def __repr__(self):
        return f"<ProductVariant {self.sku}>"


class VendorProductVariant(Base):
    """Supplier catalog entry mapped onto one of our variants."""

    __tablename__ = "vendor_product_variants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_sku: Mapped[str] = mapped_column(String(100), nullable=False)
    product_variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_variants.id"), nullable=True
    )

    product_variant = relationship("ProductVariant")


class Design(Base):
    """Artwork placed on a product by a shopper."""

    __tablename__ = "designs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stores.id"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    vector_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    exported_image_url: Mapped[Optional[str]] = mapped_column(
        String(1024), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )


# ============================================================================
# PRICING
# ============================================================================


class PricingRule(Base):
    """Markup / discount / decoration-cost policy for a quantity range.

    ``config`` holds::

        {
            "baseMarkupPercent": 40,
            "breaks": [{"minQty": 24, "unitMarkupDeltaPercent": -5,
                        "fixedUnitDiscount": 0.5}],
            "decorationCosts": {"SCREEN_PRINT": {"perLocationFee": 1.5,
                                                 "perColorFee": 0.25,
                                                 "setupFee": 20}}
        }
    """

    __tablename__ = "pricing_rules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    min_quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    config: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("min_quantity >= 1", name="pricing_rule_min_positive"),
        CheckConstraint(
            "max_quantity IS NULL OR max_quantity >= min_quantity",
            name="pricing_rule_range_ordered",
        ),
    )

    product = relationship("Product", back_populates="pricing_rules")

    def contains(self, quantity: int) -> bool:
        return quantity >= self.min_quantity and (
            self.max_quantity is None or quantity <= self.max_quantity
        )

    def __repr__(self):
        return f"<PricingRule {self.id} [{self.min_quantity}, {self.max_quantity}]>"


class ShippingRate(Base):
    """Store shipping table used by quotes."""

    __tablename__ = "shipping_rates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stores.id"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), default="Standard", nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    min_subtotal: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    max_subtotal: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    base_charge: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    per_item_charge: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=0)
    per_oz_charge: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=0)
    rush_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )


class TaxRate(Base):
    """Store tax table used by quotes."""

    __tablename__ = "tax_rates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stores.id"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    jurisdiction: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(8, 5), nullable=False)
    applies_shipping: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )


class QuoteRule(Base):
    """Adjustment rule applied by the quote engine (breaks, markup, flat fees)."""

    __tablename__ = "quote_rules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stores.id"), index=True, nullable=False
    )
    method: Mapped[QuoteRuleMethod] = mapped_column(
        SAEnum(
            QuoteRuleMethod,
            values_callable=enum_values,
            name="quote_rule_method_enum",
        ),
        nullable=False,
    )
    conditions: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    effects: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
