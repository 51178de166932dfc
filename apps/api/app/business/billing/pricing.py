from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, getcontext, localcontext

Number = int | float | Decimal

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class VolumeTier:
    min_seats: Number
    max_seats: Number | None
    price_per_seat: Number

    def covers(self, seat_count: Number) -> bool:
        value = to_decimal(seat_count)
        minimum = to_decimal(self.min_seats)
        if value.is_nan() or minimum.is_nan() or value < minimum:
            return False
        if self.max_seats is None:
            return True
        maximum = to_decimal(self.max_seats)
        return not maximum.is_nan() and value <= maximum


@dataclass(frozen=True, slots=True)
class SeatPricingResult:
    seat_count: Number
    price_per_seat: Decimal
    subtotal: Decimal
    applied_tier: VolumeTier | None = None


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # repr keeps 10.5 as 10.5 instead of the binary expansion
        return Decimal(repr(value))
    return Decimal(value)


def find_applicable_tier(seat_count: Number, tiers: Iterable[VolumeTier]) -> VolumeTier | None:
    """Return the first tier in iteration order whose inclusive bounds cover ``seat_count``.

    Overlapping tiers are not disambiguated: the earliest one in the list wins.
    """
    for tier in tiers:
        if tier.covers(seat_count):
            return tier
    return None


def resolve_seat_pricing(
    seat_count: Number,
    base_price_per_seat: Number,
    volume_tiers: Iterable[VolumeTier] | None = None,
) -> SeatPricingResult:
    """Price ``seat_count`` seats against optional volume tiers.

    Falls back to ``base_price_per_seat`` when no tier matches. Never raises for
    numeric input; range checks on the seat count belong to the caller.
    """
    applied_tier = find_applicable_tier(seat_count, volume_tiers) if volume_tiers else None
    if applied_tier is None:
        price_per_seat = to_decimal(base_price_per_seat)
    else:
        price_per_seat = to_decimal(applied_tier.price_per_seat)

    with _quiet_context():
        subtotal = to_decimal(seat_count) * price_per_seat

    return SeatPricingResult(
        seat_count=seat_count,
        price_per_seat=price_per_seat,
        subtotal=subtotal,
        applied_tier=applied_tier,
    )


def proration_outcome(total_days: Number, used_days: Number) -> str:
    """Classify a proration as ``zero``, ``full``, ``partial`` or ``over``."""
    total = to_decimal(total_days)
    used = to_decimal(used_days)

    if total.is_nan() or used.is_nan() or total <= _ZERO or used <= _ZERO:
        return "zero"
    if used == total:
        return "full"
    if used > total:
        return "over"
    return "partial"


def prorate(full_amount: Number, total_days: Number, used_days: Number) -> Decimal:
    """Scale ``full_amount`` by ``used_days / total_days``.

    An empty, negative or NaN period and zero, negative or NaN usage yield
    ``0``. Usage beyond the period is not clamped.
    """
    outcome = proration_outcome(total_days, used_days)
    if outcome == "zero":
        return Decimal(0)

    amount = to_decimal(full_amount)
    if outcome == "full":
        return amount
    with _quiet_context():
        return amount * to_decimal(used_days) / to_decimal(total_days)


def _quiet_context():
    # undefined products such as 0 * Infinity come back as NaN
    context = getcontext().copy()
    context.traps[InvalidOperation] = False
    return localcontext(context)


@dataclass(slots=True)
class SeatCalculatorService:
    def resolve_seat_pricing(
        self,
        seat_count: Number,
        base_price_per_seat: Number,
        volume_tiers: Iterable[VolumeTier] | None = None,
    ) -> SeatPricingResult:
        return resolve_seat_pricing(seat_count, base_price_per_seat, volume_tiers)

    def prorate(self, full_amount: Number, total_days: Number, used_days: Number) -> Decimal:
        return prorate(full_amount, total_days, used_days)


seat_calculator = SeatCalculatorService()
