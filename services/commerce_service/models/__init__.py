"""Commerce Service models package."""

from services.commerce_service.models.catalog import (
    Design,
    PricingRule,
    Product,
    ProductVariant,
    QuoteRule,
    ShippingRate,
    Store,
    TaxRate,
    User,
    VendorProductVariant,
)
from services.commerce_service.models.commerce import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    Payment,
    PricingSnapshot,
)
from services.commerce_service.models.enums import (
    CartStatus,
    DecorationMethod,
    OrderStatus,
    PaymentStatus,
    ProductionJobStatus,
    ProductionPriority,
    ProductionStepStatus,
    QuoteRuleMethod,
)
from services.commerce_service.models.production import (
    ProductionJob,
    ProductionStep,
    Shipment,
)

__all__ = [
    "Cart",
    "CartItem",
    "CartStatus",
    "DecorationMethod",
    "Design",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "PricingRule",
    "PricingSnapshot",
    "Product",
    "ProductVariant",
    "ProductionJob",
    "ProductionJobStatus",
    "ProductionPriority",
    "ProductionStep",
    "ProductionStepStatus",
    "QuoteRule",
    "QuoteRuleMethod",
    "Shipment",
    "ShippingRate",
    "Store",
    "TaxRate",
    "User",
    "VendorProductVariant",
]
