"""Pricing router: line price preview and full quotes."""

from fastapi import APIRouter, Depends
from libs.db.session import get_async_db
from services.commerce_service.dependencies import get_pricing_engine, get_quote_service
from services.commerce_service.exceptions import CommerceError
from services.commerce_service.pricing import DecorationSpec, PricingEngine, PricingInput
from services.commerce_service.pricing.engine_v2 import DecorationInput
from services.commerce_service.routers._helpers import http_error
from services.commerce_service.schemas import (
    PricingPreviewRequest,
    PricingPreviewResponse,
    QuoteRequest,
    QuoteResponse,
)
from services.commerce_service.services import QuoteService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/preview", response_model=PricingPreviewResponse)
async def preview_price(
    payload: PricingPreviewRequest,
    db: AsyncSession = Depends(get_async_db),
    engine: PricingEngine = Depends(get_pricing_engine),
):
    """Price a quantity of a variant without touching any cart."""
    decoration = None
    if payload.decoration is not None:
        decoration = DecorationSpec(
            method=payload.decoration.method.value,
            locations=payload.decoration.locations,
            colors=payload.decoration.colors,
        )
    try:
        result = await engine.calculate(
            db,
            PricingInput(
                quantity=payload.quantity,
                store_id=payload.store_id,
                product_variant_id=payload.variant_id,
                sku=payload.sku,
                vendor_variant_id=payload.vendor_variant_id,
                decoration=decoration,
            ),
        )
    except CommerceError as exc:
        raise http_error(exc) from exc
    return PricingPreviewResponse.model_validate(result)


@router.post("/quote", response_model=QuoteResponse)
async def quote(
    payload: QuoteRequest,
    db: AsyncSession = Depends(get_async_db),
    quote_service: QuoteService = Depends(get_quote_service),
):
    decoration = payload.decoration
    try:
        result = await quote_service.evaluate_for_product(
            db,
            store_id=payload.store_id,
            variant_id=payload.variant_id,
            qty=payload.qty,
            method=payload.method,
            decoration=DecorationInput(
                print_size_tier=decoration.print_size_tier,
                color_count=decoration.color_count,
                stitch_count=decoration.stitch_count,
                rush=decoration.rush,
                weight_oz=decoration.weight_oz,
                locations=tuple(decoration.locations),
            ),
            user_id=payload.user_id,
        )
    except CommerceError as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(result)
