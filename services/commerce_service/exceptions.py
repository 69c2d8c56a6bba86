"""Domain errors raised by the commerce core.

Routers translate any ``CommerceError`` into an ``HTTPException`` carrying
``status_code`` and the message.
"""

from typing import Any, Optional


class CommerceError(Exception):
    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(CommerceError):
    """Malformed input. Never retried."""

    status_code = 400


class CartClosedError(ValidationError):
    """Mutation attempted on a cart that is no longer ACTIVE."""

    def __init__(self, cart_id, status):
        super().__init__(
            f"Cart {cart_id} is {getattr(status, 'value', status)}, not active",
            {"cart_id": str(cart_id), "status": getattr(status, "value", status)},
        )


class NotFoundError(CommerceError):
    status_code = 404

    def __init__(self, entity: str, reference: Any):
        self.entity = entity
        self.reference = reference
        super().__init__(
            f"{entity} not found: {reference}",
            {"entity": entity, "reference": str(reference)},
        )


class EmptyCartError(CommerceError):
    status_code = 400

    def __init__(self, cart_id: Any):
        self.cart_id = cart_id
        super().__init__(
            f"Cart {cart_id} is missing or has no items",
            {"cart_id": str(cart_id)},
        )


class ProviderError(CommerceError):
    """A payments/shipping/tax/notification/webhook provider call failed."""

    status_code = 502

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        self.provider = provider
        self.upstream_status = status_code
        self.response_data = response_data or {}
        super().__init__(
            f"{provider}: {message}",
            {"provider": provider, "upstream_status": status_code},
        )


class WebhookRejectedError(ProviderError):
    """An inbound provider webhook failed verification or could not be parsed."""

    status_code = 400


class CheckoutFailedError(CommerceError):
    """Order materialization failed.

    ``payment_succeeded`` is True when the provider has already captured the
    money: the caller must reconcile (redeliver the webhook or escalate), not
    report a payment failure.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        intent_id: Optional[str] = None,
        cart_id: Optional[str] = None,
        store_id: Optional[str] = None,
        payment_succeeded: bool = False,
        cause: Optional[BaseException] = None,
    ):
        self.intent_id = intent_id
        self.cart_id = cart_id
        self.store_id = store_id
        self.payment_succeeded = payment_succeeded
        self.cause = cause
        super().__init__(
            message,
            {
                "intent_id": intent_id,
                "cart_id": cart_id,
                "store_id": store_id,
                "payment_succeeded": payment_succeeded,
            },
        )
