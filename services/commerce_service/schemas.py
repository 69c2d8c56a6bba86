"""Pydantic schemas for the commerce service."""

import uuid
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.commerce_service.models import DecorationMethod

# ============================================================================
# PRICING SCHEMAS
# ============================================================================


class DecorationPayload(BaseModel):
    method: DecorationMethod = DecorationMethod.SCREEN_PRINT
    locations: int = Field(0, ge=0)
    colors: int = Field(0, ge=0)


class PricingPreviewRequest(BaseModel):
    quantity: int
    store_id: Optional[uuid.UUID] = None
    variant_id: Optional[uuid.UUID] = None
    sku: Optional[str] = None
    vendor_variant_id: Optional[uuid.UUID] = None
    decoration: Optional[DecorationPayload] = None


class PricingPreviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    variant_id: Optional[uuid.UUID] = None
    base_price: Decimal
    color_surcharge: Decimal
    quantity_discount: Decimal
    decoration_cost: Decimal
    total: Decimal
    unit_price: Decimal
    breakdown: dict[str, Any]


class QuoteDecoration(BaseModel):
    print_size_tier: str = "MEDIUM"
    color_count: int = Field(1, ge=1)
    stitch_count: int = Field(0, ge=0)
    rush: bool = False
    weight_oz: Decimal = Field(Decimal("0"), ge=0)
    locations: list[str] = []


class QuoteRequest(BaseModel):
    store_id: uuid.UUID
    variant_id: uuid.UUID
    qty: int = Field(..., ge=1)
    method: Optional[str] = None
    decoration: QuoteDecoration = QuoteDecoration()
    user_id: Optional[uuid.UUID] = None


class SetupFeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    amount: Decimal


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    qty: int
    method: str
    locations: list[str]
    blank_unit_cost: Decimal
    decoration_unit_cost: Decimal
    unit_cost: Decimal
    blanks_subtotal: Decimal
    decoration_subtotal: Decimal
    setup_fees: list[SetupFeeResponse]
    shipping: Decimal
    taxable_subtotal: Decimal
    tax: Decimal
    subtotal: Decimal
    total: Decimal
    effective_margin_pct: Decimal
    suggested_unit_price: Decimal
    suggested_line_price: Decimal
    projected_profit: Decimal
    notes: list[str]


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class ShippingDetails(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: dict[str, Any] = {}


class CheckoutStartRequest(BaseModel):
    store_id: uuid.UUID
    cart_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    shipping: Optional[ShippingDetails] = None


class CheckoutStartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider: str
    intent_id: str
    client_secret: Optional[str] = None
    status: str


class CheckoutConfirmRequest(BaseModel):
    intent_id: str = Field(..., min_length=1)


class CheckoutConfirmResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    order_id: Optional[uuid.UUID] = None


# ============================================================================
# WEBHOOK SCHEMAS
# ============================================================================


class WebhookAck(BaseModel):
    received: bool = True
    status: str
    order_id: Optional[uuid.UUID] = None
    tracking_number: Optional[str] = None
