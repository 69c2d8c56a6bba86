"""Outbound webhook client port."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class WebhookDelivery:
    status: int
    provider_ref: Optional[str] = None


class WebhookClient(ABC):
    name: str = "webhooks"

    @abstractmethod
    async def post(
        self, url: str, headers: Mapping[str, str], payload: Any
    ) -> WebhookDelivery:
        """Deliver ``payload`` as JSON. Raises ProviderError on failure."""
        ...
