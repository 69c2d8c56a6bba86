"""HTTP-level tests for the commerce routers."""

import json
import uuid

import pytest
from services.commerce_service.models import Order
from services.commerce_service.services import CartService, ProductionService
from sqlalchemy import select
from tests.factories import OrderFactory


async def _filled_cart(db, catalog, quantity=1):
    carts = CartService()
    cart = await carts.get_or_create_cart(db, user_id=catalog.user.id)
    await carts.add_item(db, cart.id, catalog.product.id, catalog.variant.id, quantity)
    return cart


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_echoes_request_id(client):
    response = await client.get(
        "/health", headers={"X-Request-ID": "req-123", "X-Store-ID": "store-1"}
    )
    anonymous = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "commerce"}
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Store-ID"] == "store-1"
    assert anonymous.headers["X-Request-ID"]
    assert "X-Store-ID" not in anonymous.headers


# ---------------------------------------------------------------------------
# /pricing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_preview_prices_a_variant(client, catalog):
    response = await client.post(
        "/pricing/preview",
        json={"quantity": 12, "variant_id": str(catalog.variant.id)},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["variant_id"] == str(catalog.variant.id)
    assert data["unit_price"] == "9.00"
    assert data["total"] == "108.00"
    assert data["breakdown"]["lineTotal"] == 108


@pytest.mark.asyncio
@pytest.mark.integration
async def test_preview_by_sku_with_decoration(client, catalog):
    response = await client.post(
        "/pricing/preview",
        json={
            "quantity": 1,
            "sku": catalog.variant.sku,
            "decoration": {"method": "SCREEN_PRINT", "locations": 1, "colors": 2},
        },
    )

    assert response.status_code == 200
    assert response.json()["breakdown"]["quantity"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_preview_errors_map_to_http_status(client, catalog):
    missing = await client.post(
        "/pricing/preview", json={"quantity": 1, "variant_id": str(uuid.uuid4())}
    )
    bad_quantity = await client.post(
        "/pricing/preview",
        json={"quantity": 0, "variant_id": str(catalog.variant.id)},
    )
    no_reference = await client.post("/pricing/preview", json={"quantity": 1})

    assert missing.status_code == 404
    assert bad_quantity.status_code == 400
    assert no_reference.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_quote_endpoint(client, catalog):
    response = await client.post(
        "/pricing/quote",
        json={
            "store_id": str(catalog.store.id),
            "variant_id": str(catalog.variant.id),
            "qty": 24,
            "method": "screen_print",
            "decoration": {
                "print_size_tier": "LARGE",
                "color_count": 3,
                "rush": True,
                "locations": ["front", "back"],
            },
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["method"] == "SCREEN_PRINT"
    assert data["locations"] == ["front", "back"]
    assert data["setup_fees"][0]["name"] == "Screen Setup"
    assert float(data["total"]) > float(data["subtotal"])


@pytest.mark.asyncio
@pytest.mark.integration
async def test_quote_rejects_zero_quantity(client, catalog):
    response = await client.post(
        "/pricing/quote",
        json={
            "store_id": str(catalog.store.id),
            "variant_id": str(catalog.variant.id),
            "qty": 0,
        },
    )

    assert response.status_code == 422


# ---------------------------------------------------------------------------
# /checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_start_and_confirm(client, db_session, catalog, providers):
    cart = await _filled_cart(db_session, catalog)

    start = await client.post(
        "/checkout/start",
        json={
            "store_id": str(catalog.store.id),
            "cart_id": str(cart.id),
            "user_id": str(catalog.user.id),
            "shipping": {
                "name": "Ada Lovelace",
                "email": "ada@example.test",
                "address": {"city": "Austin"},
            },
        },
    )
    assert start.status_code == 200
    intent_id = start.json()["intent_id"]
    assert start.json()["provider"] == "mock"

    confirm = await client.post("/checkout/confirm", json={"intent_id": intent_id})
    again = await client.post("/checkout/confirm", json={"intent_id": intent_id})

    assert confirm.status_code == 200
    assert confirm.json()["status"] == "ok"
    assert again.json()["order_id"] == confirm.json()["order_id"]
    orders = (await db_session.execute(select(Order))).scalars().all()
    assert [str(o.id) for o in orders] == [confirm.json()["order_id"]]
    assert len(providers.notifications.outbox) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_start_with_empty_cart_is_400(client, db_session, catalog):
    cart = await CartService().get_or_create_cart(db_session, user_id=catalog.user.id)

    response = await client.post(
        "/checkout/start",
        json={"store_id": str(catalog.store.id), "cart_id": str(cart.id)},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_confirm_unknown_intent_is_404(client):
    response = await client.post("/checkout/confirm", json={"intent_id": "mock_pi_x"})

    assert response.status_code == 404


# ---------------------------------------------------------------------------
# /webhooks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_payments_webhook_drives_confirmation(
    client, db_session, catalog, providers
):
    cart = await _filled_cart(db_session, catalog)
    start = await client.post(
        "/checkout/start",
        json={"store_id": str(catalog.store.id), "cart_id": str(cart.id)},
    )
    intent_id = start.json()["intent_id"]

    response = await client.post(
        "/webhooks/payments",
        content=json.dumps({"event": "payment_succeeded", "providerRef": intent_id}),
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["received"] is True
    assert body["status"] == "ok"
    assert body["order_id"] is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_payments_webhook_rejects_garbage(client):
    response = await client.post("/webhooks/payments", content=b"not json")

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_shipping_webhook_updates_tracking(client, db_session, catalog, providers):
    order = OrderFactory.create(store_id=catalog.store.id)
    db_session.add(order)
    await db_session.commit()
    production = ProductionService(shipping=providers.shipping)
    job = await production.create_production_job(db_session, order.id)
    shipment = await production.create_shipment(db_session, job.id)

    response = await client.post(
        "/webhooks/shipping",
        content=json.dumps(
            {"trackingNumber": shipment.tracking_number, "status": "delivered"}
        ),
    )
    unknown = await client.post(
        "/webhooks/shipping",
        content=json.dumps({"trackingNumber": "NOPE", "status": "delivered"}),
    )

    assert response.status_code == 200
    assert response.json()["tracking_number"] == shipment.tracking_number
    assert response.json()["status"] == "delivered"
    assert unknown.status_code == 404
