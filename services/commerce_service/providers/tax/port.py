"""Tax provider port. All amounts are integer cents."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from services.commerce_service.providers.payments.port import ProviderHealth


@dataclass(frozen=True)
class TaxQuoteRequest:
    store_id: str
    subtotal_cents: int
    shipping_cents: int = 0
    order_id: Optional[str] = None
    destination: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TaxQuote:
    provider: str
    subtotal_cents: int
    shipping_cents: int
    tax_cents: int
    total_cents: int
    breakdown: dict[str, Any] = field(default_factory=dict)


class TaxProvider(ABC):
    name: str = "tax"

    @abstractmethod
    async def healthcheck(self) -> ProviderHealth:
        ...

    @abstractmethod
    async def calculate_tax(self, request: TaxQuoteRequest) -> TaxQuote:
        ...
