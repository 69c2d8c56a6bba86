"""Cart aggregate: line items priced once at add time and frozen in a snapshot."""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.currency import ZERO, round2, to_decimal
from libs.common.logging import get_logger
from services.commerce_service.exceptions import (
    CartClosedError,
    NotFoundError,
    ValidationError,
)
from services.commerce_service.models import (
    Cart,
    CartItem,
    CartStatus,
    Design,
    PricingSnapshot,
    Product,
)
from services.commerce_service.pricing import (
    DecorationSpec,
    PricingEngine,
    PricingInput,
)
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def _ensure_active(cart: Cart) -> None:
    if cart.status != CartStatus.ACTIVE:
        raise CartClosedError(cart.id, cart.status)


class CartService:
    """Cart operations. Every mutation ends with a total recompute from snapshots."""

    def __init__(self, pricing_engine: Optional[PricingEngine] = None):
        self.pricing_engine = pricing_engine or PricingEngine()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def _find_active_cart(
        self,
        db: AsyncSession,
        user_id: Optional[uuid.UUID],
        session_id: Optional[str],
    ) -> Optional[Cart]:
        query = select(Cart).where(Cart.status == CartStatus.ACTIVE)
        if user_id:
            query = query.where(Cart.user_id == user_id)
        else:
            query = query.where(Cart.session_id == session_id, Cart.user_id.is_(None))
        query = query.options(
            selectinload(Cart.items).selectinload(CartItem.pricing_snapshot)
        ).execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalars().first()

    async def _get_cart(self, db: AsyncSession, cart_id: uuid.UUID) -> Cart:
        result = await db.execute(
            select(Cart)
            .where(Cart.id == cart_id)
            .options(selectinload(Cart.items).selectinload(CartItem.pricing_snapshot))
            .execution_options(populate_existing=True)
        )
        cart = result.scalar_one_or_none()
        if cart is None:
            raise NotFoundError("Cart", cart_id)
        return cart

    async def _get_item(self, db: AsyncSession, item_id: uuid.UUID) -> CartItem:
        result = await db.execute(
            select(CartItem)
            .where(CartItem.id == item_id)
            .options(
                selectinload(CartItem.pricing_snapshot),
                selectinload(CartItem.cart),
            )
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError("CartItem", item_id)
        return item

    async def get_or_create_cart(
        self,
        db: AsyncSession,
        user_id: Optional[uuid.UUID] = None,
        session_id: Optional[str] = None,
        store_id: Optional[uuid.UUID] = None,
    ) -> Cart:
        """Return the ACTIVE cart for the user (or guest session), creating it if needed.

        Two concurrent first requests race on the partial unique indexes; the
        loser rolls back and returns the winner's cart.
        """
        if not user_id and not session_id:
            raise ValidationError("user_id or session_id is required")

        cart = await self._find_active_cart(db, user_id, session_id)
        if cart:
            return cart

        cart = Cart(
            user_id=user_id,
            session_id=session_id,
            store_id=store_id,
            status=CartStatus.ACTIVE,
            total=ZERO,
        )
        db.add(cart)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info(
                "Concurrent cart create for user=%s session=%s; reusing winner",
                user_id,
                session_id,
            )
            existing = await self._find_active_cart(db, user_id, session_id)
            if existing is None:
                raise
            return existing

        logger.info("Created cart %s for user=%s session=%s", cart.id, user_id, session_id)
        return await self._get_cart(db, cart.id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_item(
        self,
        db: AsyncSession,
        cart_id: uuid.UUID,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
        quantity: int,
        design_id: Optional[uuid.UUID] = None,
        mockup_url: Optional[str] = None,
        decoration: Optional[dict] = None,
    ) -> CartItem:
        """Price the line, then create the item and its snapshot in one commit."""
        cart = await self._get_cart(db, cart_id)
        _ensure_active(cart)

        product = await db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        if design_id is not None and await db.get(Design, design_id) is None:
            raise NotFoundError("Design", design_id)

        pricing = await self.pricing_engine.calculate(
            db,
            PricingInput(
                store_id=product.store_id,
                product_variant_id=variant_id,
                quantity=quantity,
                decoration=DecorationSpec.from_dict(decoration),
            ),
        )

        item = CartItem(
            id=uuid.uuid4(),
            cart_id=cart.id,
            product_id=product_id,
            variant_id=variant_id,
            design_id=design_id,
            quantity=quantity,
            mockup_url=mockup_url,
            decoration=decoration,
        )
        item.pricing_snapshot = PricingSnapshot(
            base_price=round2(pricing.base_price),
            color_surcharge=round2(pricing.color_surcharge),
            quantity_discount=round2(pricing.quantity_discount),
            total_price=pricing.total,
            breakdown=pricing.breakdown,
        )
        if cart.store_id is None:
            cart.store_id = product.store_id
        db.add(item)
        await db.commit()

        logger.info(
            "Added item %s to cart %s",
            item.id,
            cart.id,
            extra={
                "extra_fields": {
                    "variant_id": str(variant_id),
                    "quantity": quantity,
                    "line_total": str(pricing.total),
                }
            },
        )

        await self.update_cart_total(db, cart.id)
        return await self._get_item(db, item.id)

    async def update_cart_item_quantity(
        self, db: AsyncSession, item_id: uuid.UUID, quantity: int
    ) -> CartItem:
        """Change the quantity only. The snapshot keeps the add-time price."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer", {"quantity": quantity})

        item = await self._get_item(db, item_id)
        _ensure_active(item.cart)

        item.quantity = quantity
        await db.commit()

        await self.update_cart_total(db, item.cart_id)
        return item

    async def remove_item(self, db: AsyncSession, item_id: uuid.UUID) -> None:
        item = await self._get_item(db, item_id)
        _ensure_active(item.cart)
        cart_id = item.cart_id

        await db.delete(item)
        await db.commit()

        logger.info("Removed item %s from cart %s", item_id, cart_id)
        await self.update_cart_total(db, cart_id)

    async def abandon_cart(self, db: AsyncSession, cart_id: uuid.UUID) -> Cart:
        cart = await self._get_cart(db, cart_id)
        _ensure_active(cart)
        cart.status = CartStatus.ABANDONED
        await db.commit()
        logger.info("Cart %s abandoned", cart_id)
        return cart

    async def update_cart_total(self, db: AsyncSession, cart_id: uuid.UUID) -> Decimal:
        """Recompute the cached total as the sum of snapshot totals."""
        result = await db.execute(
            select(PricingSnapshot.total_price)
            .join(CartItem, PricingSnapshot.cart_item_id == CartItem.id)
            .where(CartItem.cart_id == cart_id)
        )
        total = round2(sum((to_decimal(value) for value in result.scalars()), ZERO))

        cart = await db.get(Cart, cart_id)
        if cart is None:
            raise NotFoundError("Cart", cart_id)
        cart.total = total
        await db.commit()
        return total

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_cart_details(self, db: AsyncSession, cart_id: uuid.UUID) -> Cart:
        """Cart with items, snapshots, products, variants and designs loaded."""
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
        if cart is None:
            raise NotFoundError("Cart", cart_id)
        return cart
