from app.business.billing.api import router
from app.business.billing.pricing import (
    SeatCalculatorService,
    SeatPricingResult,
    VolumeTier,
    prorate,
    resolve_seat_pricing,
    seat_calculator,
)
from app.business.billing.schemas import (
    InvoiceLineRead,
    InvoicePreviewRead,
    InvoicePreviewRequest,
    ProrationRead,
    ProrationRequest,
    SeatPricingRead,
    SeatPricingRequest,
)
from app.business.billing.service import BillingEngineService, billing_service

__all__ = [
    "router",
    "VolumeTier",
    "SeatPricingResult",
    "resolve_seat_pricing",
    "prorate",
    "SeatCalculatorService",
    "seat_calculator",
    "SeatPricingRequest",
    "SeatPricingRead",
    "ProrationRequest",
    "ProrationRead",
    "InvoicePreviewRequest",
    "InvoicePreviewRead",
    "InvoiceLineRead",
    "BillingEngineService",
    "billing_service",
]
