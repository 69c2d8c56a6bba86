"""Enum definitions for commerce service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class DecorationMethod(str, enum.Enum):
    SCREEN_PRINT = "SCREEN_PRINT"
    EMBROIDERY = "EMBROIDERY"
    DTF = "DTF"
    DTG = "DTG"
    LASER_ENGRAVING = "LASER_ENGRAVING"
    VINYL = "VINYL"
    SUBLIMATION = "SUBLIMATION"
    NONE = "NONE"


class CartStatus(str, enum.Enum):
    ACTIVE = "active"
    ABANDONED = "abandoned"
    CONVERTED = "converted"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class ProductionJobStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    ARTWORK_REVIEW = "ARTWORK_REVIEW"
    IN_PRODUCTION = "IN_PRODUCTION"
    QUALITY_CHECK = "QUALITY_CHECK"
    READY_TO_PACK = "READY_TO_PACK"
    PACKED = "PACKED"
    COMPLETED = "COMPLETED"


class ProductionPriority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    RUSH = "RUSH"


class ProductionStepStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class QuoteRuleMethod(str, enum.Enum):
    QUANTITY_BREAK = "QUANTITY_BREAK"
    MARKUP_PERCENT = "MARKUP_PERCENT"
    FEE_FLAT = "FEE_FLAT"
