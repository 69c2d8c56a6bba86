"""Loads a store's quoting configuration and runs the V2 quote engine."""

import uuid
from typing import Optional

from libs.common.currency import ZERO, to_decimal
from libs.common.logging import get_logger
from services.commerce_service.exceptions import NotFoundError
from services.commerce_service.models import (
    ProductVariant,
    QuoteRule,
    ShippingRate,
    TaxRate,
    User,
)
from services.commerce_service.pricing.engine_v2 import (
    DecorationInput,
    PricingEngineV2,
    QuoteInput,
    QuoteResult,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class QuoteService:
    def __init__(self, engine: Optional[PricingEngineV2] = None):
        self.engine = engine or PricingEngineV2()

    async def evaluate_for_product(
        self,
        db: AsyncSession,
        *,
        store_id: uuid.UUID,
        variant_id: uuid.UUID,
        qty: int,
        method: Optional[str] = None,
        decoration: Optional[DecorationInput] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> QuoteResult:
        variant = await db.get(ProductVariant, variant_id)
        if variant is None:
            raise NotFoundError("ProductVariant", variant_id)

        shipping_rates = (
            await db.execute(
                select(ShippingRate)
                .where(ShippingRate.store_id == store_id, ShippingRate.active.is_(True))
                .order_by(ShippingRate.created_at)
            )
        ).scalars().all()
        tax_rates = (
            await db.execute(
                select(TaxRate).where(
                    TaxRate.store_id == store_id, TaxRate.active.is_(True)
                )
            )
        ).scalars().all()
        rules = (
            await db.execute(
                select(QuoteRule)
                .where(QuoteRule.store_id == store_id, QuoteRule.active.is_(True))
                .order_by(QuoteRule.priority, QuoteRule.created_at)
            )
        ).scalars().all()

        tax_exempt = False
        if user_id is not None:
            user = await db.get(User, user_id)
            tax_exempt = bool(user and user.tax_exempt)

        decoration = decoration or DecorationInput()
        if not decoration.weight_oz and variant.weight_oz:
            decoration = DecorationInput(
                print_size_tier=decoration.print_size_tier,
                color_count=decoration.color_count,
                stitch_count=decoration.stitch_count,
                rush=decoration.rush,
                weight_oz=variant.weight_oz,
                locations=decoration.locations,
            )

        result = self.engine.evaluate(
            QuoteInput(
                qty=qty,
                blank_unit_cost=to_decimal(variant.supplier_cost or ZERO),
                method=method,
                decoration=decoration,
                shipping_rates=shipping_rates,
                tax_rates=tax_rates,
                tax_exempt=tax_exempt,
                rules=rules,
            )
        )
        logger.info(
            "Quoted %s x%s via %s: total %s",
            variant.sku,
            result.qty,
            result.method,
            result.total,
            extra={"extra_fields": {"store_id": str(store_id)}},
        )
        return result
