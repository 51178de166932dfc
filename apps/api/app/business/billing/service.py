from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from fastapi import HTTPException, status
from opentelemetry import trace

from app.business.billing.pricing import (
    Number,
    SeatCalculatorService,
    SeatPricingResult,
    VolumeTier,
    proration_outcome,
)
from app.business.billing.schemas import (
    BillableProductSchema,
    ContractBillingInput,
    InvoiceLineRead,
    InvoicePreviewRead,
    InvoicePreviewRequest,
    ProrationRead,
    ProrationRequest,
    SeatPricingRead,
    SeatPricingRequest,
    VolumeTierSchema,
)
from app.context import get_correlation_id
from app.core.config import get_settings
from app.metrics import observe_invoice_preview, observe_proration, observe_seat_pricing


logger = logging.getLogger("app.billing")
tracer = trace.get_tracer("app.billing")

_ZERO = Decimal("0")
_ONE = Decimal("1")
_PERIOD_MONTHS = {"monthly": 1, "quarterly": 3, "annual": 12}
_PERIODS_PER_YEAR = {"monthly": 12, "quarterly": 4, "annual": 1}


@dataclass(frozen=True, slots=True)
class BillingPeriod:
    """Half-open ``[start, end)`` billing window."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days


@dataclass(frozen=True, slots=True)
class BillableProduct:
    charge_type: str
    setup_fee: Decimal | None = None
    trial_period_days: int | None = None


@dataclass(slots=True)
class InvoiceAmounts:
    lines: list[InvoiceLineRead]
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def _skip(code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail={"code": code, "message": message})


@dataclass(slots=True)
class BillingEngineService:
    seat_calculator: SeatCalculatorService = field(default_factory=SeatCalculatorService)

    def price_seats(self, payload: SeatPricingRequest) -> SeatPricingRead:
        result = self._resolve_seat_pricing(payload.seat_count, payload.base_price_per_seat, payload.volume_tiers)
        return self._to_seat_pricing_read(result)

    def prorate_amount(self, payload: ProrationRequest) -> ProrationRead:
        prorated = self._prorate(payload.full_amount, payload.total_days, payload.used_days)
        return ProrationRead(
            full_amount=payload.full_amount,
            total_days=payload.total_days,
            used_days=payload.used_days,
            prorated_amount=prorated,
        )

    def preview_invoice(self, payload: InvoicePreviewRequest, *, today: date | None = None) -> InvoicePreviewRead:
        contract = payload.contract
        settings = get_settings()
        today = today or date.today()

        with tracer.start_as_current_span("billing.invoice_preview") as span:
            span.set_attribute("contract_id", contract.contract_id)
            correlation_id = get_correlation_id()
            if correlation_id:
                span.set_attribute("correlation_id", correlation_id)

            if contract.status != "active":
                observe_invoice_preview("rejected")
                raise _skip("CONTRACT_NOT_ACTIVE", f"Contract {contract.contract_id} is not active")

            if payload.period_start and payload.period_end and payload.period_end < payload.period_start:
                observe_invoice_preview("rejected")
                raise _skip("INVALID_BILLING_PERIOD", "period_end must be on or after period_start")

            period = self.calculate_billing_period(
                contract.billing_frequency,
                payload.period_start,
                payload.period_end,
                today=today,
            )
            product = self._to_billable_product(payload.product)

            if not self.should_bill_product(product, contract.start_date, period.start):
                self._log_skip(contract, period, "product_rules")
                raise _skip(
                    "BILLING_SKIPPED",
                    f"Product billing skipped for period {period.start.isoformat()} "
                    "(usage_based, trial, or one_time after first period)",
                )
            if self._covered_days(contract, period) <= 0:
                self._log_skip(contract, period, "outside_contract_term")
                raise _skip("BILLING_SKIPPED", f"Contract {contract.contract_id} is not in effect during the billing period")

            amounts = self.calculate_invoice_amounts(contract, product, period)

            issue_date = payload.issue_date or today
            payment_terms_days = (
                contract.payment_terms_days
                if contract.payment_terms_days is not None
                else settings.default_payment_terms_days
            )
            invoice_number = self.format_invoice_number(issue_date.year, payload.invoice_sequence)
            span.set_attribute("invoice_number", invoice_number)

            preview = InvoicePreviewRead(
                invoice_number=invoice_number,
                contract_id=contract.contract_id,
                contract_number=contract.contract_number,
                currency=contract.currency or settings.default_currency,
                issue_date=issue_date,
                due_date=self.calculate_due_date(issue_date, payment_terms_days),
                period_start=period.start,
                period_end=period.end,
                subtotal=amounts.subtotal,
                tax=amounts.tax,
                discount=amounts.discount,
                total=amounts.total,
                lines=amounts.lines,
            )

        observe_invoice_preview("generated")
        logger.info(
            "billing.invoice_previewed",
            extra={
                "contract_id": contract.contract_id,
                "invoice_number": invoice_number,
                "period_start": period.start.isoformat(),
                "period_end": period.end.isoformat(),
                "line_count": len(preview.lines),
                "total": preview.total,
            },
        )
        return preview

    def calculate_billing_period(
        self,
        billing_frequency: str,
        period_start: date | None = None,
        period_end: date | None = None,
        *,
        today: date | None = None,
    ) -> BillingPeriod:
        if period_start is not None and period_end is not None:
            return BillingPeriod(start=period_start, end=period_end)

        start = period_start or today or date.today()
        months = _PERIOD_MONTHS.get(billing_frequency, 1)
        return BillingPeriod(start=start, end=self._add_months(start, months))

    @staticmethod
    def calculate_period_amount(contract_value: Decimal, billing_frequency: str) -> Decimal:
        periods = _PERIODS_PER_YEAR.get(billing_frequency, 12)
        if periods == 1:
            return contract_value
        return contract_value / periods

    def should_bill_product(self, product: BillableProduct | None, contract_start: date, period_start: date) -> bool:
        if product is None:
            return True

        if product.charge_type == "usage_based":
            return False

        trial_days = product.trial_period_days or 0
        if trial_days > 0 and period_start < contract_start + timedelta(days=trial_days):
            return False

        if product.charge_type == "one_time":
            return self.is_first_billing_period(contract_start, period_start)

        return True

    def get_setup_fee(self, product: BillableProduct | None, contract_start: date, period_start: date) -> Decimal:
        if product is None or not product.setup_fee:
            return Decimal(0)
        if self.is_first_billing_period(contract_start, period_start):
            return product.setup_fee
        return Decimal(0)

    @staticmethod
    def is_first_billing_period(contract_start: date, period_start: date) -> bool:
        return (contract_start.year, contract_start.month) == (period_start.year, period_start.month)

    @staticmethod
    def calculate_due_date(issue_date: date, payment_terms_days: int) -> date:
        return issue_date + timedelta(days=payment_terms_days)

    @staticmethod
    def format_invoice_number(year: int, sequence: int) -> str:
        prefix = get_settings().invoice_number_prefix
        return f"{prefix}-{year}-{sequence:06d}"

    def calculate_invoice_amounts(
        self,
        contract: ContractBillingInput,
        product: BillableProduct | None,
        period: BillingPeriod,
    ) -> InvoiceAmounts:
        label = contract.billing_frequency.capitalize()
        total_days = period.days
        used_days = self._covered_days(contract, period)
        partial = 0 < used_days < total_days

        if contract.seat_count and contract.seat_price:
            pricing = self._resolve_seat_pricing(contract.seat_count, contract.seat_price, contract.volume_tiers)
            amount = pricing.subtotal
            if partial:
                amount = self._prorate(amount, total_days, used_days)
            line = InvoiceLineRead(
                description=f"{label} Subscription - {self._format_quantity(contract.seat_count)} seats",
                quantity=contract.seat_count,
                unit_price=pricing.price_per_seat,
                amount=amount,
                applied_tier=self._to_tier_schema(pricing.applied_tier),
                prorated=partial,
            )
        else:
            period_amount = self.calculate_period_amount(contract.contract_value, contract.billing_frequency)
            amount = self._prorate(period_amount, total_days, used_days) if partial else period_amount
            line = InvoiceLineRead(
                description=f"{label} Subscription",
                quantity=_ONE,
                unit_price=period_amount,
                amount=amount,
                prorated=partial,
            )
        lines = [line]

        setup_fee = self.get_setup_fee(product, contract.start_date, period.start)
        if setup_fee > _ZERO:
            lines.append(
                InvoiceLineRead(
                    description="Setup Fee (one-time)",
                    quantity=_ONE,
                    unit_price=setup_fee,
                    amount=setup_fee,
                )
            )

        subtotal = sum((item.amount for item in lines), Decimal(0))
        tax = Decimal(0)
        discount = Decimal(0)
        return InvoiceAmounts(lines=lines, subtotal=subtotal, tax=tax, discount=discount, total=subtotal + tax - discount)

    def _resolve_seat_pricing(
        self,
        seat_count: Number,
        base_price_per_seat: Number,
        tiers: list[VolumeTierSchema] | None,
    ) -> SeatPricingResult:
        volume_tiers = [self._to_volume_tier(tier) for tier in tiers] if tiers else None
        result = self.seat_calculator.resolve_seat_pricing(seat_count, base_price_per_seat, volume_tiers)
        observe_seat_pricing(result.applied_tier is not None)
        return result

    def _prorate(self, full_amount: Decimal, total_days: int, used_days: int) -> Decimal:
        prorated = self.seat_calculator.prorate(full_amount, total_days, used_days)
        observe_proration(proration_outcome(total_days, used_days))
        return prorated

    @staticmethod
    def _covered_days(contract: ContractBillingInput, period: BillingPeriod) -> int:
        start = max(period.start, contract.start_date)
        # contract end_date is the last billable day
        end = min(period.end, contract.end_date + timedelta(days=1))
        return (end - start).days

    def _log_skip(self, contract: ContractBillingInput, period: BillingPeriod, reason: str) -> None:
        observe_invoice_preview("skipped")
        logger.info(
            "billing.invoice_skipped",
            extra={
                "contract_id": contract.contract_id,
                "period_start": period.start.isoformat(),
                "period_end": period.end.isoformat(),
                "reason": reason,
            },
        )

    @staticmethod
    def _add_months(base_date: date, months: int) -> date:
        month_index = base_date.month - 1 + months
        year = base_date.year + (month_index // 12)
        month = month_index % 12 + 1
        day = min(base_date.day, calendar.monthrange(year, month)[1])
        return date(year, month, day)

    @staticmethod
    def _format_quantity(value: Decimal) -> str:
        return format(value.normalize(), "f")

    @staticmethod
    def _to_volume_tier(tier: VolumeTierSchema) -> VolumeTier:
        return VolumeTier(min_seats=tier.min_seats, max_seats=tier.max_seats, price_per_seat=tier.price_per_seat)

    @staticmethod
    def _to_tier_schema(tier: VolumeTier | None) -> VolumeTierSchema | None:
        if tier is None:
            return None
        return VolumeTierSchema.model_validate(tier)

    @staticmethod
    def _to_billable_product(product: BillableProductSchema | None) -> BillableProduct | None:
        if product is None:
            return None
        return BillableProduct(
            charge_type=product.charge_type,
            setup_fee=product.setup_fee,
            trial_period_days=product.trial_period_days,
        )

    @staticmethod
    def _to_seat_pricing_read(result: SeatPricingResult) -> SeatPricingRead:
        return SeatPricingRead(
            seat_count=result.seat_count,
            price_per_seat=result.price_per_seat,
            subtotal=result.subtotal,
            applied_tier=BillingEngineService._to_tier_schema(result.applied_tier),
        )


billing_service = BillingEngineService()
