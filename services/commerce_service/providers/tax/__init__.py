"""Tax providers: port, internal single-rate provider and tax API adapter."""

from services.commerce_service.providers.tax.http import HttpTaxProvider
from services.commerce_service.providers.tax.internal import InternalTaxProvider
from services.commerce_service.providers.tax.port import (
    TaxProvider,
    TaxQuote,
    TaxQuoteRequest,
)

__all__ = [
    "HttpTaxProvider",
    "InternalTaxProvider",
    "TaxProvider",
    "TaxQuote",
    "TaxQuoteRequest",
]
