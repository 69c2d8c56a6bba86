"""Line pricing (rule-based) and quote composition engines."""

from services.commerce_service.pricing.engine import (
    DecorationSpec,
    PricingEngine,
    PricingInput,
    PricingResult,
)
from services.commerce_service.pricing.engine_v2 import (
    PricingEngineV2,
    QuoteInput,
    QuoteResult,
)

__all__ = [
    "DecorationSpec",
    "PricingEngine",
    "PricingEngineV2",
    "PricingInput",
    "PricingResult",
    "QuoteInput",
    "QuoteResult",
]
