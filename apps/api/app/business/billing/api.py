from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from app.api.errors import error_response
from app.api.responses import ApiResponse, build_non_paginated_list_response, build_single_response
from app.business.billing.schemas import (
    BILLING_FREQUENCIES,
    InvoicePreviewRead,
    InvoicePreviewRequest,
    ProrationRead,
    ProrationRequest,
    SeatPricingRead,
    SeatPricingRequest,
)
from app.business.billing.service import billing_service


router = APIRouter(prefix="/api/billing", tags=["billing"])


@router.post("/seat-pricing", response_model=ApiResponse[SeatPricingRead])
def calculate_seat_pricing(payload: SeatPricingRequest) -> ApiResponse[SeatPricingRead]:
    return build_single_response(billing_service.price_seats(payload))


@router.post("/proration", response_model=ApiResponse[ProrationRead])
def calculate_proration(payload: ProrationRequest) -> ApiResponse[ProrationRead]:
    return build_single_response(billing_service.prorate_amount(payload))


@router.post("/invoices/preview", response_model=ApiResponse[InvoicePreviewRead])
def preview_invoice(request: Request, payload: InvoicePreviewRequest) -> ApiResponse[InvoicePreviewRead] | JSONResponse:
    try:
        return build_single_response(billing_service.preview_invoice(payload))
    except HTTPException as exc:
        detail = exc.detail if isinstance(exc.detail, dict) else {"message": str(exc.detail)}
        return error_response(
            request,
            status_code=exc.status_code,
            code=str(detail.get("code", "billing_invoice_preview_failed")),
            message=str(detail.get("message", "")),
            details=detail,
        )


@router.get("/billing-frequencies", response_model=ApiResponse[list[str]])
def list_billing_frequencies() -> ApiResponse[list[str]]:
    return build_non_paginated_list_response(list(BILLING_FREQUENCIES))
