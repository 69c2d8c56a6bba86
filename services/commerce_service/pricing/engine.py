"""Rule-based line pricing.

The breakdown dict returned here is frozen into ``PricingSnapshot.breakdown``
and copied onto order items, so its keys and rounding are a stable contract:

    currency, unitPrice, lineTotal, blankCost, decorationCost, setupFee,
    markup, discount, ruleId, quantity
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from libs.common.config import get_settings
from libs.common.currency import ZERO, as_json_number, round2, to_decimal
from libs.common.logging import get_logger
from services.commerce_service.exceptions import NotFoundError, ValidationError
from services.commerce_service.models import (
    DecorationMethod,
    PricingRule,
    Product,
    ProductVariant,
    VendorProductVariant,
)
from services.commerce_service.pricing.rules import select_rule
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


@dataclass(frozen=True)
class DecorationSpec:
    method: str = DecorationMethod.SCREEN_PRINT.value
    locations: int = 0
    colors: int = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["DecorationSpec"]:
        if not data:
            return None
        try:
            locations = int(data.get("locations") or 0)
            colors = int(data.get("colors") or 0)
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                "decoration locations and colors must be integers",
                {"decoration": data},
            ) from exc
        return cls(
            method=str(data.get("method") or DecorationMethod.SCREEN_PRINT.value),
            locations=locations,
            colors=colors,
        )

    def validate(self) -> None:
        """Reject counts that would turn decoration fees negative or fractional."""
        for name in ("locations", "colors"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(
                    f"decoration {name} must be an integer", {name: value}
                )
            if value < 0:
                raise ValidationError(
                    f"decoration {name} cannot be negative", {name: value}
                )


@dataclass(frozen=True)
class PricingInput:
    quantity: int
    store_id: Optional[uuid.UUID] = None
    product_variant_id: Optional[uuid.UUID] = None
    sku: Optional[str] = None
    vendor_variant_id: Optional[uuid.UUID] = None
    decoration: Optional[DecorationSpec] = None


@dataclass(frozen=True)
class PricingResult:
    base_price: Decimal
    color_surcharge: Decimal
    quantity_discount: Decimal
    decoration_cost: Decimal
    total: Decimal
    breakdown: dict[str, Any] = field(default_factory=dict)
    variant_id: Optional[uuid.UUID] = None

    @property
    def unit_price(self) -> Decimal:
        return to_decimal(self.breakdown["unitPrice"])


def _variant_query():
    return (
        select(ProductVariant)
        .options(
            selectinload(ProductVariant.product).selectinload(Product.pricing_rules),
            selectinload(ProductVariant.product).selectinload(Product.store),
        )
        .execution_options(populate_existing=True)
    )


def _rule_config(rule: PricingRule) -> dict:
    # Older rules stored the break list directly instead of a config object
    cfg = rule.config
    if isinstance(cfg, list):
        return {"breaks": cfg}
    return cfg or {}


def _break_threshold(entry: dict) -> Decimal:
    threshold = entry.get("minQty")
    if threshold is None:
        threshold = entry.get("qty")
    return to_decimal(1 if threshold is None else threshold)


class PricingEngine:
    """Computes a frozen price breakdown for a quantity of a variant."""

    def __init__(self, currency: Optional[str] = None):
        self.currency = currency

    async def resolve_variant(
        self, db: AsyncSession, pricing_input: PricingInput
    ) -> ProductVariant:
        if pricing_input.product_variant_id:
            query = _variant_query().where(
                ProductVariant.id == pricing_input.product_variant_id
            )
            reference = pricing_input.product_variant_id
        elif pricing_input.sku:
            query = _variant_query().where(ProductVariant.sku == pricing_input.sku)
            reference = pricing_input.sku
        elif pricing_input.vendor_variant_id:
            vendor_variant = await db.get(
                VendorProductVariant, pricing_input.vendor_variant_id
            )
            reference = pricing_input.vendor_variant_id
            if vendor_variant is None or vendor_variant.product_variant_id is None:
                raise NotFoundError("ProductVariant", reference)
            query = _variant_query().where(
                ProductVariant.id == vendor_variant.product_variant_id
            )
        else:
            raise ValidationError(
                "A variant reference (product_variant_id, sku or vendor_variant_id) is required"
            )

        result = await db.execute(query)
        variant = result.scalar_one_or_none()
        if variant is None:
            raise NotFoundError("ProductVariant", reference)
        return variant

    async def calculate(
        self, db: AsyncSession, pricing_input: PricingInput
    ) -> PricingResult:
        quantity = pricing_input.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("quantity must be an integer")
        if quantity <= 0:
            raise ValidationError(
                "quantity must be positive", {"quantity": quantity}
            )
        if pricing_input.decoration is not None:
            pricing_input.decoration.validate()

        variant = await self.resolve_variant(db, pricing_input)
        product = variant.product

        blank_cost = to_decimal(variant.supplier_cost or product.base_price or 0)
        markup = ZERO
        discount = ZERO
        decoration_cost = ZERO
        setup_fee = ZERO

        rule = select_rule(product.pricing_rules, quantity)
        if rule is not None:
            cfg = _rule_config(rule)
            base_markup_percent = to_decimal(cfg.get("baseMarkupPercent") or 0)
            breaks = cfg.get("breaks") if isinstance(cfg.get("breaks"), list) else []
            matching_break = next(
                (
                    entry
                    for entry in sorted(breaks, key=_break_threshold, reverse=True)
                    if quantity >= _break_threshold(entry)
                ),
                None,
            )

            markup = blank_cost * base_markup_percent / 100
            if matching_break is not None:
                if matching_break.get("unitMarkupDeltaPercent") is not None:
                    delta = to_decimal(matching_break["unitMarkupDeltaPercent"])
                    markup = blank_cost * (base_markup_percent + delta) / 100
                if matching_break.get("fixedUnitDiscount") is not None:
                    discount = to_decimal(matching_break["fixedUnitDiscount"])

            decoration = pricing_input.decoration or DecorationSpec(locations=0)
            method = decoration.method or DecorationMethod.SCREEN_PRINT.value
            deco_cfg = (cfg.get("decorationCosts") or {}).get(method) or {}
            decoration_cost = (
                to_decimal(deco_cfg.get("perLocationFee") or 0) * decoration.locations
                + to_decimal(deco_cfg.get("perColorFee") or 0) * decoration.colors
            )
            setup_fee = to_decimal(deco_cfg.get("setupFee") or 0)

        unit_price = round2(blank_cost + markup - discount + decoration_cost)
        line_total = round2(unit_price * quantity + setup_fee)

        currency = (
            self.currency
            or (product.store.currency if product.store else None)
            or get_settings().DEFAULT_CURRENCY
        )

        logger.debug(
            "Priced %s x%s: unit=%s line=%s rule=%s",
            variant.sku,
            quantity,
            unit_price,
            line_total,
            rule.id if rule else None,
        )

        return PricingResult(
            base_price=blank_cost,
            color_surcharge=ZERO,
            quantity_discount=discount,
            decoration_cost=decoration_cost,
            total=line_total,
            breakdown={
                "currency": currency,
                "unitPrice": as_json_number(unit_price),
                "lineTotal": as_json_number(line_total),
                "blankCost": as_json_number(blank_cost),
                "decorationCost": as_json_number(decoration_cost),
                "setupFee": as_json_number(setup_fee),
                "markup": as_json_number(markup),
                "discount": as_json_number(discount),
                "ruleId": str(rule.id) if rule else None,
                "quantity": quantity,
            },
            variant_id=variant.id,
        )
