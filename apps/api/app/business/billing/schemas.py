from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


BillingFrequency = Literal["monthly", "quarterly", "annual"]
ContractStatus = Literal["active", "draft", "expired", "cancelled"]
ChargeType = Literal["recurring", "one_time", "usage_based"]

BILLING_FREQUENCIES: tuple[str, ...] = ("monthly", "quarterly", "annual")


class VolumeTierSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    min_seats: Decimal
    max_seats: Decimal | None = None
    price_per_seat: Decimal


class SeatPricingRequest(BaseModel):
    seat_count: Decimal
    base_price_per_seat: Decimal
    volume_tiers: list[VolumeTierSchema] | None = None


class SeatPricingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    seat_count: Decimal
    price_per_seat: Decimal
    subtotal: Decimal
    applied_tier: VolumeTierSchema | None = None


class ProrationRequest(BaseModel):
    full_amount: Decimal
    total_days: int
    used_days: int


class ProrationRead(BaseModel):
    full_amount: Decimal
    total_days: int
    used_days: int
    prorated_amount: Decimal


class BillableProductSchema(BaseModel):
    charge_type: ChargeType = "recurring"
    setup_fee: Decimal | None = Field(default=None, ge=Decimal("0"))
    trial_period_days: int | None = Field(default=None, ge=0)


class ContractBillingInput(BaseModel):
    contract_id: str = Field(min_length=1)
    contract_number: str | None = None
    status: ContractStatus | str = "active"
    start_date: date
    end_date: date
    contract_value: Decimal = Field(ge=Decimal("0"))
    billing_frequency: BillingFrequency | str = "annual"
    seat_count: Decimal | None = Field(default=None, ge=Decimal("0"))
    seat_price: Decimal | None = Field(default=None, ge=Decimal("0"))
    volume_tiers: list[VolumeTierSchema] | None = None
    payment_terms_days: int | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    @model_validator(mode="after")
    def _check_term(self) -> "ContractBillingInput":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class InvoicePreviewRequest(BaseModel):
    contract: ContractBillingInput
    product: BillableProductSchema | None = None
    period_start: date | None = None
    period_end: date | None = None
    issue_date: date | None = None
    invoice_sequence: int = Field(default=1, ge=1)


class InvoiceLineRead(BaseModel):
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal
    applied_tier: VolumeTierSchema | None = None
    prorated: bool = False


class InvoicePreviewRead(BaseModel):
    invoice_number: str
    contract_id: str
    contract_number: str | None
    currency: str
    status: Literal["draft"] = "draft"
    billing_type: Literal["recurring"] = "recurring"
    issue_date: date
    due_date: date
    period_start: date
    period_end: date
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    lines: list[InvoiceLineRead] = Field(default_factory=list)
