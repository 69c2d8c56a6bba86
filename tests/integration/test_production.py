"""Integration tests for production jobs and shipment tracking."""

import json
import uuid

import pytest
from services.commerce_service.exceptions import (
    NotFoundError,
    ProviderError,
    WebhookRejectedError,
)
from services.commerce_service.models import (
    ProductionJobStatus,
    ProductionPriority,
    ProductionStepStatus,
)
from services.commerce_service.providers.shipping import MockShippingProvider
from services.commerce_service.services import PRODUCTION_STEPS, ProductionService
from tests.factories import OrderFactory, StoreFactory


async def _paid_order(db):
    store = StoreFactory.create()
    order = OrderFactory.create(store_id=store.id)
    db.add_all([store, order])
    await db.commit()
    return order


@pytest.mark.asyncio
@pytest.mark.integration
async def test_job_is_created_once_per_order(db_session):
    order = await _paid_order(db_session)
    production = ProductionService()

    job = await production.create_production_job(db_session, order.id)
    again = await production.create_production_job(db_session, order.id)

    assert again.id == job.id
    assert job.status == ProductionJobStatus.QUEUED
    assert job.priority == ProductionPriority.NORMAL
    assert [(s.position, s.name) for s in job.steps] == list(enumerate(PRODUCTION_STEPS))
    assert {s.status for s in job.steps} == {ProductionStepStatus.PENDING}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_job_for_unknown_order_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        await ProductionService().create_production_job(db_session, uuid.uuid4())


@pytest.mark.asyncio
@pytest.mark.integration
async def test_step_status_stamps_start_and_completion(db_session):
    order = await _paid_order(db_session)
    production = ProductionService()
    job = await production.create_production_job(db_session, order.id)
    step = job.steps[0]

    started = await production.update_step_status(
        db_session, step.id, ProductionStepStatus.IN_PROGRESS
    )
    assert started.started_at is not None
    assert started.completed_at is None

    done = await production.update_step_status(
        db_session, step.id, ProductionStepStatus.COMPLETED
    )
    assert done.status == ProductionStepStatus.COMPLETED
    assert done.completed_at is not None

    with pytest.raises(NotFoundError):
        await production.update_step_status(
            db_session, uuid.uuid4(), ProductionStepStatus.SKIPPED
        )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_production_job_loads_order_lines(db_session):
    order = await _paid_order(db_session)
    production = ProductionService()
    job = await production.create_production_job(db_session, order.id)

    loaded = await production.get_production_job(db_session, job.id)

    assert loaded.order.id == order.id
    assert loaded.order.items == []
    assert loaded.shipments == []
    with pytest.raises(NotFoundError):
        await production.get_production_job(db_session, uuid.uuid4())


# ---------------------------------------------------------------------------
# Shipments
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_shipment_gets_label_and_tracking_updates(db_session):
    order = await _paid_order(db_session)
    production = ProductionService(shipping=MockShippingProvider())
    job = await production.create_production_job(db_session, order.id)

    shipment = await production.create_shipment(db_session, job.id)

    assert shipment.tracking_number == "MOCKTRACK" + order.id.hex[-8:].upper()
    assert shipment.status == "label_created"
    assert shipment.service == "GROUND"
    assert [e["eventType"] for e in shipment.events] == ["LABEL_CREATED"]

    body = json.dumps(
        {
            "trackingNumber": shipment.tracking_number,
            "status": "in_transit",
            "eventType": "TRACKING_UPDATE",
        }
    ).encode()
    updated = await production.apply_tracking_event(db_session, body, {})

    assert updated.id == shipment.id
    assert updated.status == "in_transit"
    assert [e["status"] for e in updated.events] == ["label_created", "in_transit"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tracking_event_for_unknown_shipment(db_session):
    production = ProductionService(shipping=MockShippingProvider())
    body = json.dumps({"trackingNumber": "NOPE", "status": "delivered"}).encode()

    with pytest.raises(NotFoundError):
        await production.apply_tracking_event(db_session, body, {})
    with pytest.raises(WebhookRejectedError):
        await production.apply_tracking_event(db_session, b"{}", {})


@pytest.mark.asyncio
@pytest.mark.integration
async def test_shipments_need_a_shipping_provider(db_session):
    order = await _paid_order(db_session)
    production = ProductionService()
    job = await production.create_production_job(db_session, order.id)

    with pytest.raises(ProviderError):
        await production.create_shipment(db_session, job.id)
