"""Checkout router: start a checkout and confirm its payment intent."""

from fastapi import APIRouter, Depends
from libs.db.session import get_async_db
from services.commerce_service.dependencies import get_checkout_service
from services.commerce_service.exceptions import CommerceError
from services.commerce_service.routers._helpers import http_error
from services.commerce_service.schemas import (
    CheckoutConfirmRequest,
    CheckoutConfirmResponse,
    CheckoutStartRequest,
    CheckoutStartResponse,
)
from services.commerce_service.services import CheckoutPayload, CheckoutService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/start", response_model=CheckoutStartResponse)
async def start_checkout(
    payload: CheckoutStartRequest,
    db: AsyncSession = Depends(get_async_db),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Validate the cart, quote tax and create a payment intent."""
    shipping = payload.shipping.model_dump() if payload.shipping else {}
    try:
        result = await checkout.start_checkout(
            db,
            CheckoutPayload(
                store_id=payload.store_id,
                cart_id=payload.cart_id,
                user_id=payload.user_id,
                shipping=shipping,
            ),
        )
    except CommerceError as exc:
        raise http_error(exc) from exc
    return CheckoutStartResponse.model_validate(result)


@router.post("/confirm", response_model=CheckoutConfirmResponse)
async def confirm_checkout(
    payload: CheckoutConfirmRequest,
    db: AsyncSession = Depends(get_async_db),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Confirm the intent and materialize the order. Safe to call repeatedly."""
    try:
        result = await checkout.handle_confirmation(db, payload.intent_id)
    except CommerceError as exc:
        raise http_error(exc) from exc
    return CheckoutConfirmResponse.model_validate(result)
