"""Shared helpers for commerce routers."""

from fastapi import HTTPException
from libs.common.logging import get_logger
from services.commerce_service.exceptions import CommerceError

logger = get_logger(__name__)


def http_error(exc: CommerceError) -> HTTPException:
    """Map a domain error onto the HTTP status it declares."""
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message, extra={"extra_fields": exc.details})
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def lowered_headers(headers) -> dict[str, str]:
    return {key.lower(): value for key, value in headers.items()}
