"""Fulfillment models: production jobs, their steps, and shipments."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import reference_number, utc_now
from libs.db.base import Base, JSONType
from services.commerce_service.models.enums import (
    ProductionJobStatus,
    ProductionPriority,
    ProductionStepStatus,
    enum_values,
)
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class ProductionJob(Base):
    """Exactly one job per paid order."""

    __tablename__ = "production_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id"), unique=True, nullable=False
    )
    job_number: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)

    status: Mapped[ProductionJobStatus] = mapped_column(
        SAEnum(
            ProductionJobStatus,
            values_callable=enum_values,
            name="production_job_status_enum",
        ),
        default=ProductionJobStatus.QUEUED,
    )
    priority: Mapped[ProductionPriority] = mapped_column(
        SAEnum(
            ProductionPriority,
            values_callable=enum_values,
            name="production_priority_enum",
        ),
        default=ProductionPriority.NORMAL,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    order = relationship("Order", back_populates="production_job")
    steps = relationship(
        "ProductionStep",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="ProductionStep.position",
    )
    shipments = relationship("Shipment", back_populates="job")

    @staticmethod
    def generate_job_number() -> str:
        return reference_number("JOB")

    def __repr__(self):
        return f"<ProductionJob {self.job_number} {self.status}>"


class ProductionStep(Base):
    __tablename__ = "production_steps"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("production_jobs.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ProductionStepStatus] = mapped_column(
        SAEnum(
            ProductionStepStatus,
            values_callable=enum_values,
            name="production_step_status_enum",
        ),
        default=ProductionStepStatus.PENDING,
    )

    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    job = relationship("ProductionJob", back_populates="steps")

    def __repr__(self):
        return f"<ProductionStep {self.position}:{self.name} {self.status}>"


class Shipment(Base):
    """Carrier label and tracking state for a production job."""

    __tablename__ = "shipments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("production_jobs.id"), index=True, nullable=False
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id"), index=True, nullable=False
    )
    carrier: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    service: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tracking_number: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False
    )
    tracking_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    label_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(50), default="label_created")
    events: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    job = relationship("ProductionJob", back_populates="shipments")

    def __repr__(self):
        return f"<Shipment {self.tracking_number} {self.status}>"
