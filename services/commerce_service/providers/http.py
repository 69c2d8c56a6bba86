"""Shared async HTTP plumbing for the real provider adapters."""

from typing import Any, Optional

import httpx
from libs.common.logging import get_logger, get_request_id
from services.commerce_service.exceptions import ProviderError

logger = get_logger(__name__)


class ProviderHTTPClient:
    """Thin httpx wrapper that turns transport errors and non-2xx into ProviderError.

    ``transport`` lets tests inject ``httpx.MockTransport``.
    """

    provider_name = "http"

    def __init__(
        self,
        base_url: str,
        headers: Optional[dict[str, str]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        auth: Optional[tuple[str, str]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._auth = auth
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
        form_data: Optional[dict] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Make a request and return the decoded JSON body."""
        request_id = get_request_id()
        if request_id:
            headers = {"X-Request-ID": request_id, **(headers or {})}
        try:
            async with self._client() as client:
                response = await client.request(
                    method=method,
                    url=endpoint,
                    params=params,
                    json=json_data,
                    data=form_data,
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.error(
                "%s request failed: %s %s: %s",
                self.provider_name,
                method,
                endpoint,
                e,
            )
            raise ProviderError(self.provider_name, f"request failed: {e}") from e

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {"raw": response.text}

        if not response.is_success:
            logger.error(
                "%s API error: %s - %s",
                self.provider_name,
                response.status_code,
                data,
            )
            message = "Unknown provider error"
            if isinstance(data, dict):
                error = data.get("error")
                if isinstance(error, dict):
                    message = error.get("message") or message
                else:
                    message = data.get("message") or error or message
            raise ProviderError(
                self.provider_name,
                message,
                status_code=response.status_code,
                response_data=data if isinstance(data, dict) else {"body": data},
            )

        return data
