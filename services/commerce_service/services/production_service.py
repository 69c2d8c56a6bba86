"""Production jobs for paid orders, and carrier shipments for those jobs."""

import uuid
from typing import Mapping, Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.commerce_service.exceptions import (
    NotFoundError,
    ProviderError,
    ValidationError,
    WebhookRejectedError,
)
from services.commerce_service.models import (
    Order,
    ProductionJob,
    ProductionJobStatus,
    ProductionPriority,
    ProductionStep,
    ProductionStepStatus,
    Shipment,
)
from services.commerce_service.providers.shipping import (
    LabelRequest,
    ShippingProvider,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

PRODUCTION_STEPS = (
    "artwork_review",
    "setup",
    "production",
    "quality_check",
    "packing",
)


class ProductionService:
    def __init__(self, shipping: Optional[ShippingProvider] = None):
        self.shipping = shipping

    async def create_production_job(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        commit: bool = True,
    ) -> ProductionJob:
        """Create the job and its five ordered steps. Returns the existing job if any."""
        existing = await db.execute(
            select(ProductionJob)
            .where(ProductionJob.order_id == order_id)
            .options(selectinload(ProductionJob.steps))
        )
        job = existing.scalar_one_or_none()
        if job is not None:
            return job

        order = await db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)

        job = ProductionJob(
            id=uuid.uuid4(),
            order_id=order_id,
            job_number=ProductionJob.generate_job_number(),
            status=ProductionJobStatus.QUEUED,
            priority=ProductionPriority.NORMAL,
        )
        job.steps = [
            ProductionStep(name=name, position=position, status=ProductionStepStatus.PENDING)
            for position, name in enumerate(PRODUCTION_STEPS)
        ]
        db.add(job)
        await db.flush()

        logger.info("Created production job %s for order %s", job.job_number, order_id)

        if commit:
            await db.commit()
        return job

    async def get_production_job(
        self, db: AsyncSession, job_id: uuid.UUID
    ) -> ProductionJob:
        result = await db.execute(
            select(ProductionJob)
            .where(ProductionJob.id == job_id)
            .options(
                selectinload(ProductionJob.steps),
                selectinload(ProductionJob.shipments),
                selectinload(ProductionJob.order).selectinload(Order.items),
            )
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise NotFoundError("ProductionJob", job_id)
        return job

    async def update_step_status(
        self,
        db: AsyncSession,
        step_id: uuid.UUID,
        status: ProductionStepStatus,
    ) -> ProductionStep:
        step = await db.get(ProductionStep, step_id)
        if step is None:
            raise NotFoundError("ProductionStep", step_id)

        step.status = status
        if status == ProductionStepStatus.IN_PROGRESS and step.started_at is None:
            step.started_at = utc_now()
        if status == ProductionStepStatus.COMPLETED:
            step.completed_at = utc_now()
        await db.commit()
        return step

    # ------------------------------------------------------------------
    # Shipments
    # ------------------------------------------------------------------

    def _require_shipping(self) -> ShippingProvider:
        if self.shipping is None:
            raise ProviderError("shipping", "no shipping provider configured")
        return self.shipping

    async def create_shipment(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        rate_id: Optional[str] = None,
    ) -> Shipment:
        """Buy a label for the job's order and record the shipment."""
        shipping = self._require_shipping()
        job = await self.get_production_job(db, job_id)
        order = job.order

        label = await shipping.create_label(
            LabelRequest(
                store_id=str(order.store_id),
                order_id=str(order.id),
                rate_id=rate_id,
                destination=order.shipping_address or {},
                metadata={"jobNumber": job.job_number},
            )
        )

        shipment = Shipment(
            job_id=job.id,
            order_id=order.id,
            carrier=label.carrier,
            service=label.service_level,
            tracking_number=label.tracking_number,
            tracking_url=label.tracking_url,
            label_url=label.label_url,
            status=label.status,
            events=[event.to_dict() for event in label.events],
        )
        db.add(shipment)
        await db.commit()

        logger.info(
            "Created shipment %s for job %s",
            shipment.tracking_number,
            job.job_number,
            extra={"extra_fields": {"provider": label.provider}},
        )
        return shipment

    async def apply_tracking_event(
        self,
        db: AsyncSession,
        body: bytes,
        headers: Mapping[str, str],
    ) -> Shipment:
        """Update a shipment from a carrier webhook."""
        shipping = self._require_shipping()
        event = await shipping.parse_webhook_event(body, headers)
        if not event.accepted:
            logger.warning("Rejected shipping webhook: %s", event.reason)
            raise WebhookRejectedError(
                shipping.name, event.reason or "webhook rejected"
            )

        result = await db.execute(
            select(Shipment).where(Shipment.tracking_number == event.tracking_number)
        )
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise NotFoundError("Shipment", event.tracking_number)
        if not event.status and not event.event_type:
            raise ValidationError("Tracking event carries no status")

        if event.status:
            shipment.status = event.status
        # Reassign so the JSON column is flagged dirty
        shipment.events = [
            *(shipment.events or []),
            {
                "eventType": event.event_type,
                "status": event.status,
                "occurredAt": utc_now().isoformat(),
            },
        ]
        await db.commit()

        logger.info(
            "Shipment %s is now %s", shipment.tracking_number, shipment.status
        )
        return shipment
