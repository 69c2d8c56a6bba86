"""Integration tests for quoting with store configuration loaded from the database."""

import uuid
from decimal import Decimal

import pytest
from services.commerce_service.exceptions import NotFoundError
from services.commerce_service.models import QuoteRuleMethod
from services.commerce_service.pricing.engine_v2 import DecorationInput
from services.commerce_service.services import QuoteService
from tests.factories import (
    ProductFactory,
    ProductVariantFactory,
    QuoteRuleFactory,
    ShippingRateFactory,
    StoreFactory,
    TaxRateFactory,
    UserFactory,
)

quotes = QuoteService()


async def _store_with_rates(db, tax_exempt=False):
    store = StoreFactory.create()
    user = UserFactory.create(tax_exempt=tax_exempt)
    product = ProductFactory.create(store_id=store.id)
    variant = ProductVariantFactory.create(
        product_id=product.id,
        supplier_cost=Decimal("8.00"),
        weight_oz=Decimal("7.00"),
    )
    db.add_all(
        [
            store,
            user,
            product,
            variant,
            ShippingRateFactory.create(store_id=store.id),
            TaxRateFactory.create(store_id=store.id),
            # Another store's configuration never leaks in
            TaxRateFactory.create(rate=Decimal("0.5")),
        ]
    )
    await db.commit()
    return store, user, variant


async def _embroidery_quote(db, store, user, variant):
    return await quotes.evaluate_for_product(
        db,
        store_id=store.id,
        variant_id=variant.id,
        qty=12,
        method="EMBROIDERY",
        decoration=DecorationInput(stitch_count=6500, locations=("chest",)),
        user_id=user.id,
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tax_exempt_customer_pays_no_tax(db_session):
    store, user, variant = await _store_with_rates(db_session, tax_exempt=True)

    result = await _embroidery_quote(db_session, store, user, variant)

    assert result.tax == 0
    # Weight comes from the variant when the decoration leaves it unset
    assert result.shipping == Decimal("11.60")
    assert result.unit_cost == Decimal("12.43")
    assert result.total == Decimal("206.76")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_store_tax_rate_applies_to_taxable_customer(db_session):
    store, user, variant = await _store_with_rates(db_session)

    result = await _embroidery_quote(db_session, store, user, variant)

    # 9% of (149.16 + 46.00 setup + 11.60 shipping)
    assert result.taxable_subtotal == Decimal("206.76")
    assert result.tax == Decimal("18.61")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_store_quote_rules_are_applied(db_session):
    store, user, variant = await _store_with_rates(db_session, tax_exempt=True)
    db_session.add_all(
        [
            QuoteRuleFactory.create(store_id=store.id, priority=10),
            QuoteRuleFactory.create(
                store_id=store.id,
                method=QuoteRuleMethod.FEE_FLAT,
                effects={"amount": 15, "name": "Rush Art"},
                priority=20,
            ),
            QuoteRuleFactory.create(store_id=store.id, active=False, priority=1),
        ]
    )
    await db_session.commit()

    result = await _embroidery_quote(db_session, store, user, variant)

    assert [fee.name for fee in result.setup_fees] == ["Digitizing", "Rush Art"]
    assert len(result.notes) == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_variant_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        await quotes.evaluate_for_product(
            db_session, store_id=uuid.uuid4(), variant_id=uuid.uuid4(), qty=1
        )
