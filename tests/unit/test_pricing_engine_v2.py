"""Unit tests for quote composition (pure, no database)."""

from decimal import Decimal

import pytest
from services.commerce_service.pricing.engine_v2 import (
    DecorationInput,
    PricingEngineV2,
    QuoteInput,
    QuoteRuleInput,
    ShippingRateInput,
    TaxRateInput,
    normalize_method,
)

engine = PricingEngineV2()


@pytest.mark.unit
def test_screen_print_rush_scenario_without_configured_rates():
    result = engine.evaluate(
        QuoteInput(
            qty=24,
            blank_unit_cost=6.5,
            method="SCREEN_PRINT",
            decoration=DecorationInput(
                print_size_tier="LARGE",
                color_count=3,
                rush=True,
                weight_oz=9,
                locations=("front", "back"),
            ),
        )
    )

    assert len(result.setup_fees) > 0
    assert result.shipping > 0
    assert result.tax > 0
    assert result.total > result.subtotal
    assert result.suggested_unit_price > 0
    assert result.effective_margin_pct > 0
    # 8 + 0.35 * 24 + 0.06 * (9 * 24) + 5 rush surcharge
    assert result.shipping == Decimal("34.36")
    assert result.locations == ["front", "back"]


@pytest.mark.unit
def test_embroidery_tax_exempt_scenario():
    result = engine.evaluate(
        QuoteInput(
            qty=12,
            blank_unit_cost=8,
            method="EMBROIDERY",
            decoration=DecorationInput(
                stitch_count=6500, rush=False, weight_oz=7, locations=("chest",)
            ),
            shipping_rates=[
                ShippingRateInput(
                    base_charge=5,
                    per_item_charge=0.2,
                    per_oz_charge=0.05,
                    rush_multiplier=1.5,
                )
            ],
            tax_rates=[TaxRateInput(rate=0.09, applies_shipping=True)],
            tax_exempt=True,
        )
    )

    assert result.tax == 0
    assert result.shipping > 0
    assert result.total > result.subtotal - result.tax
    assert result.shipping == Decimal("11.60")
    assert [fee.name for fee in result.setup_fees] == ["Digitizing"]
    assert result.setup_fees[0].amount == Decimal("46.00")
    assert result.unit_cost == Decimal("12.43")
    assert result.subtotal == Decimal("195.16")
    assert result.total == Decimal("206.76")


@pytest.mark.unit
def test_tax_exempt_keeps_shipping_unchanged():
    base = QuoteInput(
        qty=10,
        blank_unit_cost=4,
        method="DTG",
        decoration=DecorationInput(weight_oz=5),
        tax_rates=[TaxRateInput(rate=0.07)],
    )
    taxed = engine.evaluate(base)
    exempt = engine.evaluate(
        QuoteInput(**{**base.__dict__, "tax_exempt": True})
    )

    assert taxed.tax > 0
    assert exempt.tax == 0
    assert exempt.shipping == taxed.shipping


@pytest.mark.unit
def test_rules_apply_in_order():
    result = engine.evaluate(
        QuoteInput(
            qty=12,
            blank_unit_cost=10,
            method="NONE",
            rules=[
                QuoteRuleInput(
                    method="QUANTITY_BREAK",
                    conditions={"qtyBreaks": [{"minQty": 10, "multiplier": 0.9}]},
                ),
                QuoteRuleInput(method="MARKUP_PERCENT", effects={"percent": 10}),
                QuoteRuleInput(
                    method="FEE_FLAT", effects={"amount": 25, "name": "Art Fee"}
                ),
                QuoteRuleInput(
                    method="FEE_FLAT", effects={"amount": 99}, active=False
                ),
            ],
        )
    )

    assert result.unit_cost == Decimal("9.90")
    assert [(f.name, f.amount) for f in result.setup_fees] == [("Art Fee", Decimal("25.00"))]
    assert result.subtotal == Decimal("143.80")
    assert len(result.notes) == 3


@pytest.mark.unit
def test_shipping_uses_rate_whose_bounds_contain_subtotal():
    rates = [
        ShippingRateInput(max_subtotal=100, base_charge=9),
        ShippingRateInput(min_subtotal=100, base_charge=0),
    ]
    small = engine.evaluate(
        QuoteInput(qty=1, blank_unit_cost=20, method="NONE", shipping_rates=rates)
    )
    large = engine.evaluate(
        QuoteInput(qty=10, blank_unit_cost=20, method="NONE", shipping_rates=rates)
    )

    assert small.shipping == Decimal("9.00")
    assert large.shipping == Decimal("0.00")


@pytest.mark.unit
def test_inactive_tax_rates_fall_back_to_default_rate():
    result = engine.evaluate(
        QuoteInput(
            qty=1,
            blank_unit_cost=100,
            method="NONE",
            shipping_rates=[ShippingRateInput(base_charge=0)],
            tax_rates=[TaxRateInput(rate=0.5, active=False)],
        )
    )

    assert result.tax == Decimal("8.25")


@pytest.mark.unit
def test_shipping_excluded_from_taxable_subtotal_unless_rate_applies():
    result = engine.evaluate(
        QuoteInput(
            qty=1,
            blank_unit_cost=100,
            method="NONE",
            shipping_rates=[ShippingRateInput(base_charge=10)],
            tax_rates=[TaxRateInput(rate=0.1, applies_shipping=False)],
        )
    )

    assert result.taxable_subtotal == Decimal("100.00")
    assert result.tax == Decimal("10.00")


@pytest.mark.unit
def test_margin_targets_forty_percent():
    result = engine.evaluate(
        QuoteInput(
            qty=10,
            blank_unit_cost=6,
            method="NONE",
            shipping_rates=[ShippingRateInput(base_charge=0)],
            tax_rates=[TaxRateInput(rate=0)],
        )
    )

    assert result.total == Decimal("60.00")
    assert result.suggested_line_price == Decimal("100.00")
    assert result.suggested_unit_price == Decimal("10.00")
    assert result.projected_profit == Decimal("40.00")
    assert result.effective_margin_pct == Decimal("40.00")


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, expected",
    [("screen_print", "SCREEN_PRINT"), ("dtf", "DTF"), ("glitter", "NONE"), (None, "NONE")],
)
def test_normalize_method(raw, expected):
    assert normalize_method(raw).value == expected
