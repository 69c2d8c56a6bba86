"""Quote composition: decoration, setup fees, rule adjustments, shipping, tax, margin.

``PricingEngineV2.evaluate`` is pure and synchronous. Rate and rule inputs
are duck-typed, so ``ShippingRate``/``TaxRate``/``QuoteRule`` rows can be
passed straight from the database.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Sequence

from libs.common.currency import ZERO, Number, round2, to_decimal
from services.commerce_service.models import DecorationMethod, QuoteRuleMethod

TARGET_MARGIN = Decimal("0.4")
FALLBACK_TAX_RATE = Decimal("0.0825")

SIZE_MULTIPLIERS = {
    "SMALL": Decimal("0.9"),
    "MEDIUM": Decimal("1"),
    "LARGE": Decimal("1.25"),
}

# (flat cost per location scaled by print size, extra cost per additional color)
_FLAT_METHOD_COSTS = {
    DecorationMethod.DTF: (Decimal("1.95"), Decimal("0.10")),
    DecorationMethod.DTG: (Decimal("2.10"), Decimal("0.18")),
    DecorationMethod.LASER_ENGRAVING: (Decimal("1.55"), ZERO),
    DecorationMethod.VINYL: (Decimal("1.35"), Decimal("0.35")),
    DecorationMethod.SUBLIMATION: (Decimal("1.75"), ZERO),
}


@dataclass(frozen=True)
class DecorationInput:
    print_size_tier: str = "MEDIUM"
    color_count: int = 1
    stitch_count: int = 0
    rush: bool = False
    weight_oz: Number = 0
    locations: Sequence[str] = ()


@dataclass(frozen=True)
class ShippingRateInput:
    active: bool = True
    min_subtotal: Optional[Number] = None
    max_subtotal: Optional[Number] = None
    base_charge: Number = 0
    per_item_charge: Number = 0
    per_oz_charge: Number = 0
    rush_multiplier: Number = 1


@dataclass(frozen=True)
class TaxRateInput:
    rate: Number
    active: bool = True
    applies_shipping: bool = True


@dataclass(frozen=True)
class QuoteRuleInput:
    method: str
    conditions: dict = field(default_factory=dict)
    effects: dict = field(default_factory=dict)
    active: bool = True


@dataclass(frozen=True)
class QuoteInput:
    qty: int
    blank_unit_cost: Number
    method: Optional[str] = None
    decoration: DecorationInput = field(default_factory=DecorationInput)
    shipping_rates: Sequence[Any] = ()
    tax_rates: Sequence[Any] = ()
    tax_exempt: bool = False
    rules: Sequence[Any] = ()


@dataclass(frozen=True)
class SetupFee:
    name: str
    amount: Decimal


@dataclass(frozen=True)
class QuoteResult:
    qty: int
    method: str
    locations: list[str]
    blank_unit_cost: Decimal
    decoration_unit_cost: Decimal
    unit_cost: Decimal
    blanks_subtotal: Decimal
    decoration_subtotal: Decimal
    setup_fees: list[SetupFee]
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


def normalize_method(value: Optional[str]) -> DecorationMethod:
    try:
        return DecorationMethod(str(value or "NONE").strip().upper())
    except ValueError:
        return DecorationMethod.NONE


def _value(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def decoration_unit_cost(
    method: DecorationMethod, decoration: DecorationInput
) -> Decimal:
    """Per-location decoration cost for one unit."""
    size = SIZE_MULTIPLIERS.get(
        str(decoration.print_size_tier or "MEDIUM").upper(), Decimal("1")
    )
    colors = max(1, int(decoration.color_count or 1))
    stitches = max(0, int(decoration.stitch_count or 0))

    if method == DecorationMethod.SCREEN_PRINT:
        return round2((Decimal("1.2") + (colors - 1) * Decimal("0.45")) * size)
    if method == DecorationMethod.EMBROIDERY:
        return round2(Decimal("0.85") + Decimal(stitches) / 1000 * Decimal("0.55"))
    if method in _FLAT_METHOD_COSTS:
        flat, per_extra_color = _FLAT_METHOD_COSTS[method]
        return round2(flat * size + (colors - 1) * per_extra_color)
    return ZERO


def setup_fees_for(
    method: DecorationMethod, decoration: DecorationInput
) -> list[SetupFee]:
    if method == DecorationMethod.NONE:
        return []
    if method == DecorationMethod.SCREEN_PRINT:
        colors = max(1, int(decoration.color_count or 1))
        return [SetupFee("Screen Setup", round2(18 + colors * 7))]
    if method == DecorationMethod.EMBROIDERY:
        stitches = max(0, int(decoration.stitch_count or 0))
        return [SetupFee("Digitizing", round2(20 + Decimal(stitches) / 1000 * 4))]
    return [SetupFee("Setup", round2(12))]


def apply_rules(
    unit_cost: Decimal,
    fees: list[SetupFee],
    qty: int,
    rules: Sequence[Any],
    notes: list[str],
) -> tuple[Decimal, list[SetupFee]]:
    """Apply quote rules in the given order."""
    next_unit = unit_cost
    next_fees = list(fees)

    for rule in rules or ():
        if _value(rule, "active", True) is False:
            continue
        raw_method = _value(rule, "method")
        method = str(getattr(raw_method, "value", raw_method) or "").upper()
        conditions = _value(rule, "conditions") or {}
        effects = _value(rule, "effects") or {}

        if method == QuoteRuleMethod.QUANTITY_BREAK.value:
            breaks = conditions.get("qtyBreaks")
            breaks = breaks if isinstance(breaks, list) else []
            matched = next(
                (
                    entry
                    for entry in sorted(
                        breaks,
                        key=lambda e: to_decimal(e.get("minQty") or 0),
                        reverse=True,
                    )
                    if qty >= to_decimal(entry.get("minQty") or 0)
                ),
                None,
            )
            if matched is not None and matched.get("multiplier") is not None:
                multiplier = to_decimal(matched["multiplier"])
                next_unit = round2(next_unit * multiplier)
                notes.append(f"Applied qty multiplier {multiplier}")

        elif method == QuoteRuleMethod.MARKUP_PERCENT.value:
            pct = to_decimal(effects.get("percent") or 0)
            if pct > 0:
                next_unit = round2(next_unit * (1 + pct / 100))
                notes.append(f"Applied markup {pct}%")

        elif method == QuoteRuleMethod.FEE_FLAT.value:
            amount = to_decimal(effects.get("amount") or 0)
            if amount > 0:
                next_fees.append(
                    SetupFee(str(effects.get("name") or "Rule Fee"), round2(amount))
                )
                notes.append("Applied flat fee rule")

    return next_unit, next_fees


def compute_shipping(
    subtotal: Decimal,
    qty: int,
    weight_oz: Decimal,
    rush: bool,
    rates: Sequence[Any],
) -> Decimal:
    """Charge from the first active rate whose bounds contain ``subtotal``.

    Falls back to the first active rate, and to a flat formula when no rate
    is active.
    """
    active = [r for r in rates or () if _value(r, "active", True)]
    if not active:
        return round2(
            8 + qty * Decimal("0.35") + weight_oz * Decimal("0.06") + (5 if rush else 0)
        )

    def in_bounds(rate) -> bool:
        low = _value(rate, "min_subtotal")
        high = _value(rate, "max_subtotal")
        return (low is None or subtotal >= to_decimal(low)) and (
            high is None or subtotal <= to_decimal(high)
        )

    match = next((r for r in active if in_bounds(r)), active[0])
    base = (
        to_decimal(_value(match, "base_charge") or 0)
        + qty * to_decimal(_value(match, "per_item_charge") or 0)
        + weight_oz * to_decimal(_value(match, "per_oz_charge") or 0)
    )
    multiplier = to_decimal(_value(match, "rush_multiplier") or 1) if rush else 1
    return round2(base * multiplier)


def compute_tax(
    taxable_subtotal: Decimal, rates: Sequence[Any], tax_exempt: bool
) -> Decimal:
    if tax_exempt:
        return round2(0)
    active = [r for r in rates or () if _value(r, "active", True)]
    if not active:
        return round2(taxable_subtotal * FALLBACK_TAX_RATE)
    total_rate = sum((to_decimal(_value(r, "rate") or 0) for r in active), ZERO)
    return round2(taxable_subtotal * total_rate)


class PricingEngineV2:
    def evaluate(self, quote: QuoteInput) -> QuoteResult:
        qty = max(1, int(quote.qty or 1))
        method = normalize_method(quote.method)
        decoration = quote.decoration or DecorationInput()
        locations = list(decoration.locations) or ["front"]
        blank_unit_cost = round2(max(ZERO, to_decimal(quote.blank_unit_cost or 0)))
        rush = bool(decoration.rush)
        weight_oz = max(ZERO, to_decimal(decoration.weight_oz or 0))

        notes: list[str] = []
        per_location = decoration_unit_cost(method, decoration)
        fees = setup_fees_for(method, decoration)

        pre_rule_unit = round2(blank_unit_cost + per_location * len(locations))
        ruled_unit, ruled_fees = apply_rules(
            pre_rule_unit, fees, qty, quote.rules, notes
        )

        unit_cost = round2(ruled_unit)
        blanks_subtotal = round2(blank_unit_cost * qty)
        decoration_subtotal = round2((unit_cost - blank_unit_cost) * qty)
        setup_total = round2(sum((fee.amount for fee in ruled_fees), ZERO))
        subtotal = round2(blanks_subtotal + decoration_subtotal + setup_total)

        shipping = compute_shipping(
            subtotal, qty, weight_oz * qty, rush, quote.shipping_rates
        )
        taxable_shipping = any(
            _value(r, "active", True) and _value(r, "applies_shipping", False)
            for r in quote.tax_rates or ()
        )
        taxable_subtotal = round2(subtotal + (shipping if taxable_shipping else 0))
        tax = compute_tax(taxable_subtotal, quote.tax_rates, quote.tax_exempt)
        total = round2(subtotal + shipping + tax)

        suggested_line_price = round2(total / (1 - TARGET_MARGIN))
        suggested_unit_price = round2(suggested_line_price / qty)
        projected_profit = round2(suggested_line_price - total)
        effective_margin_pct = (
            round2(projected_profit / suggested_line_price * 100)
            if suggested_line_price > 0
            else round2(0)
        )

        return QuoteResult(
            qty=qty,
            method=method.value,
            locations=locations,
            blank_unit_cost=blank_unit_cost,
            decoration_unit_cost=round2(per_location * len(locations)),
            unit_cost=unit_cost,
            blanks_subtotal=blanks_subtotal,
            decoration_subtotal=decoration_subtotal,
            setup_fees=ruled_fees,
            shipping=shipping,
            taxable_subtotal=taxable_subtotal,
            tax=tax,
            subtotal=subtotal,
            total=total,
            effective_margin_pct=effective_margin_pct,
            suggested_unit_price=suggested_unit_price,
            suggested_line_price=suggested_line_price,
            projected_profit=projected_profit,
            notes=notes,
        )
