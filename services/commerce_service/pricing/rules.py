"""Pricing rule selection and creation.

Rule ranges are closed intervals ``[min_quantity, max_quantity]`` where a
null ``max_quantity`` is unbounded. When several active rules contain a
quantity, the narrowest range wins; ties go to the higher ``min_quantity``,
then the earlier ``created_at``, then the id. New active rules may not
overlap an existing active rule of the same product.
"""

import math
import uuid
from typing import Iterable, Optional

from libs.common.logging import get_logger
from services.commerce_service.exceptions import NotFoundError, ValidationError
from services.commerce_service.models import PricingRule, Product
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _width(rule: PricingRule) -> float:
    if rule.max_quantity is None:
        return math.inf
    return rule.max_quantity - rule.min_quantity


def _selection_key(rule: PricingRule):
    created = rule.created_at.timestamp() if rule.created_at else math.inf
    return (_width(rule), -rule.min_quantity, created, str(rule.id))


def select_rule(rules: Iterable[PricingRule], quantity: int) -> Optional[PricingRule]:
    """Pick the active rule for ``quantity``, or None when no range contains it."""
    candidates = [r for r in rules if r.active and r.contains(quantity)]
    if not candidates:
        return None
    return min(candidates, key=_selection_key)


def ranges_overlap(
    min_a: int, max_a: Optional[int], min_b: int, max_b: Optional[int]
) -> bool:
    upper_a = math.inf if max_a is None else max_a
    upper_b = math.inf if max_b is None else max_b
    return min_a <= upper_b and min_b <= upper_a


async def create_pricing_rule(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    min_quantity: int = 1,
    max_quantity: Optional[int] = None,
    config: Optional[dict] = None,
    name: Optional[str] = None,
    active: bool = True,
) -> PricingRule:
    """Create a pricing rule, rejecting ranges that overlap an active rule."""
    if isinstance(min_quantity, bool) or not isinstance(min_quantity, int):
        raise ValidationError("min_quantity must be an integer")
    if min_quantity < 1:
        raise ValidationError("min_quantity must be at least 1")
    if max_quantity is not None and max_quantity < min_quantity:
        raise ValidationError("max_quantity must be >= min_quantity")

    product = await db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)

    if active:
        query = select(PricingRule).where(
            PricingRule.product_id == product_id,
            PricingRule.active.is_(True),
        )
        result = await db.execute(query)
        for existing in result.scalars().all():
            if ranges_overlap(
                min_quantity,
                max_quantity,
                existing.min_quantity,
                existing.max_quantity,
            ):
                raise ValidationError(
                    "Pricing rule range overlaps an active rule",
                    {
                        "product_id": str(product_id),
                        "conflicting_rule_id": str(existing.id),
                    },
                )

    rule = PricingRule(
        product_id=product_id,
        min_quantity=min_quantity,
        max_quantity=max_quantity,
        config=config or {},
        name=name,
        active=active,
    )
    db.add(rule)
    await db.commit()
    await db.refresh(rule)

    logger.info(
        "Created pricing rule %s for product %s [%s, %s]",
        rule.id,
        product_id,
        min_quantity,
        max_quantity,
    )
    return rule
