"""Deterministic single-rate tax provider."""

from decimal import ROUND_HALF_UP, Decimal

from libs.common.currency import to_decimal
from services.commerce_service.providers.payments.port import ProviderHealth
from services.commerce_service.providers.tax.port import (
    TaxProvider,
    TaxQuote,
    TaxQuoteRequest,
)


class InternalTaxProvider(TaxProvider):
    name = "internal"

    def __init__(self, rate: float = 0.0825):
        self.rate = to_decimal(rate)

    async def healthcheck(self) -> ProviderHealth:
        return ProviderHealth(
            ok=True,
            provider=self.name,
            message="Internal deterministic tax provider ready",
        )

    async def calculate_tax(self, request: TaxQuoteRequest) -> TaxQuote:
        subtotal_cents = max(0, int(request.subtotal_cents or 0))
        shipping_cents = max(0, int(request.shipping_cents or 0))
        taxable_base = subtotal_cents + shipping_cents
        tax_cents = int(
            (Decimal(taxable_base) * self.rate).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            )
        )
        return TaxQuote(
            provider=self.name,
            subtotal_cents=subtotal_cents,
            shipping_cents=shipping_cents,
            tax_cents=tax_cents,
            total_cents=taxable_base + tax_cents,
            breakdown={"taxRate": float(self.rate), "taxableBase": taxable_base},
        )
