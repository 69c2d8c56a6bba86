"""Tax calculation adapter over a JSON HTTP API (``POST /tax/quote``)."""

from typing import Optional

import httpx
from services.commerce_service.exceptions import ProviderError
from services.commerce_service.providers.http import ProviderHTTPClient
from services.commerce_service.providers.payments.port import ProviderHealth
from services.commerce_service.providers.tax.port import (
    TaxProvider,
    TaxQuote,
    TaxQuoteRequest,
)


class HttpTaxProvider(ProviderHTTPClient, TaxProvider):
    name = "tax_api"
    provider_name = "tax_api"

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url=api_url,
            headers={"Authorization": f"Bearer {api_key}"} if api_key else {},
            timeout=timeout,
            transport=transport,
        )

    async def healthcheck(self) -> ProviderHealth:
        if not self.base_url:
            return ProviderHealth(ok=False, provider=self.name, message="Missing TAX_API_URL")
        try:
            await self._request("GET", "/health")
        except ProviderError as e:
            return ProviderHealth(ok=False, provider=self.name, message=e.message)
        return ProviderHealth(ok=True, provider=self.name)

    async def calculate_tax(self, request: TaxQuoteRequest) -> TaxQuote:
        data = await self._request(
            "POST",
            "/tax/quote",
            json_data={
                "storeId": request.store_id,
                "orderId": request.order_id,
                "subtotalCents": request.subtotal_cents,
                "shippingCents": request.shipping_cents,
                "destination": request.destination,
            },
        )
        if "taxCents" not in data:
            raise ProviderError(self.name, "tax response missing taxCents", response_data=data)

        subtotal_cents = int(data.get("subtotalCents", request.subtotal_cents))
        shipping_cents = int(data.get("shippingCents", request.shipping_cents))
        tax_cents = int(data["taxCents"])
        return TaxQuote(
            provider=self.name,
            subtotal_cents=subtotal_cents,
            shipping_cents=shipping_cents,
            tax_cents=tax_cents,
            total_cents=int(
                data.get("totalCents", subtotal_cents + shipping_cents + tax_cents)
            ),
            breakdown=data.get("breakdown") or {},
        )
