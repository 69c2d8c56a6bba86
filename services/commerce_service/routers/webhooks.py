"""Inbound provider webhooks (no auth; verified by the provider adapter)."""

from fastapi import APIRouter, Depends, Request
from libs.db.session import get_async_db
from services.commerce_service.dependencies import (
    get_checkout_service,
    get_production_service,
)
from services.commerce_service.exceptions import CommerceError
from services.commerce_service.routers._helpers import http_error, lowered_headers
from services.commerce_service.schemas import WebhookAck
from services.commerce_service.services import CheckoutService, ProductionService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/payments", response_model=WebhookAck)
async def payments_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Payment provider events. Success events materialize the order."""
    raw = await request.body()
    try:
        result = await checkout.handle_webhook(db, raw, lowered_headers(request.headers))
    except CommerceError as exc:
        raise http_error(exc) from exc
    return WebhookAck(status=result.status, order_id=result.order_id)


@router.post("/shipping", response_model=WebhookAck)
async def shipping_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    production: ProductionService = Depends(get_production_service),
):
    raw = await request.body()
    try:
        shipment = await production.apply_tracking_event(
            db, raw, lowered_headers(request.headers)
        )
    except CommerceError as exc:
        raise http_error(exc) from exc
    return WebhookAck(status=shipment.status, tracking_number=shipment.tracking_number)
