"""
Pricing Calculator

Derives the total charge of a booking from the property rates, the number
of slots and the length of the time window.

Rules:
- Duration is rounded up to whole hours, minimum one hour
- From 24 billable hours on, a property with a daily rate charges the
  daily rate per slot; otherwise hourly rate x hours per slot
- Total = per-slot price x slot count
- Staff may supply an explicit total; it is taken verbatim when it is a
  positive finite number, otherwise the calculated total stands
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
import logging

from shared.domain.value_objects import Money, TimeWindow, quantize, to_decimal

logger = logging.getLogger(__name__)

DAILY_RATE_THRESHOLD_HOURS = 24


class RateBasis(str, Enum):
    HOURLY = 'HOURLY'
    DAILY = 'DAILY'


@dataclass(frozen=True)
class PriceQuote:
    """Result of pricing a booking request"""
    billable_hours: int
    slot_count: int
    rate_basis: RateBasis
    per_slot: Money
    calculated_total: Money
    total: Money
    override_applied: bool = False


def parse_explicit_total(raw) -> Decimal | None:
    """
    Interpret a caller-supplied total

    Returns the amount when it is a positive finite number, else None so
    that the calculated price is used.
    """
    if raw is None or raw == '':
        return None
    try:
        amount = to_decimal(raw)
    except ValueError:
        return None
    if amount <= 0:
        return None
    return quantize(amount)


class PricingCalculator:
    """
    Prices booking requests for a property

    The calculator is stateless; it reads the rate fields of whatever
    property object it is given (``hourly_rate``, ``daily_rate``,
    ``currency``).
    """

    def price(self, property_obj, slot_count: int, window: TimeWindow, explicit_total=None) -> PriceQuote:
        if slot_count < 1:
            raise ValueError("At least one slot is required")

        currency = property_obj.currency
        hours = window.billable_hours
        hourly_rate = Money(to_decimal(property_obj.hourly_rate or 0), currency)
        daily_rate = Money(to_decimal(property_obj.daily_rate or 0), currency)

        if hours >= DAILY_RATE_THRESHOLD_HOURS and daily_rate.amount > 0:
            basis = RateBasis.DAILY
            per_slot = daily_rate
        else:
            basis = RateBasis.HOURLY
            per_slot = hourly_rate * hours

        calculated = (per_slot * slot_count).quantized()

        override = parse_explicit_total(explicit_total)
        if override is not None:
            if override != calculated.amount:
                logger.info(
                    f"Explicit total {override} replaces calculated {calculated.amount} "
                    f"for property {property_obj.pk}"
                )
            total = Money(override, currency)
        else:
            total = calculated

        return PriceQuote(
            billable_hours=hours,
            slot_count=slot_count,
            rate_basis=basis,
            per_slot=per_slot.quantized(),
            calculated_total=calculated,
            total=total,
            override_applied=override is not None,
        )


pricing_calculator = PricingCalculator()
