"""
Common Value Objects

Value objects used by the reservation and payment domains:
- Money: Decimal amount with currency
- TimeWindow: Half-open datetime interval [start, end) reserved by a booking
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from shared.domain.base import ValueObject

CENT = Decimal('0.01')


def to_decimal(value) -> Decimal:
    """
    Coerce user input into a Decimal

    Floats go through ``str`` so 0.1 stays 0.1. Raises ValueError for
    anything that is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError("Amount must be a number")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    else:
        raise ValueError(f"Invalid amount: {value!r}")

    if not result.is_finite():
        raise ValueError("Amount must be a finite number")
    return result


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a non-negative monetary amount with currency.
    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'LKR'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        object.__setattr__(self, 'currency', self.currency.upper())

    @classmethod
    def zero(cls, currency: str = 'LKR') -> 'Money':
        return cls(Decimal('0.00'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a whole count (slots, hours)"""
        if not isinstance(factor, (int, Decimal)) or isinstance(factor, bool):
            raise TypeError("Can only multiply Money by int or Decimal")
        return Money(self.amount * Decimal(factor), self.currency)

    def quantized(self) -> 'Money':
        return Money(quantize(self.amount), self.currency)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Time window value object

    Represents the interval from ``start`` (inclusive) to ``end``
    (exclusive). Two windows that only touch at an endpoint do not overlap,
    so back-to-back bookings of the same slot are allowed.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start ({self.start}) must be before end ({self.end})")

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        """
        Check if this window overlaps with another

        Examples:
            - [10:00, 12:00) overlaps with [11:00, 13:00) -> True
            - [10:00, 12:00) overlaps with [12:00, 14:00) -> False (adjacent)
        """
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")
        return self.start < other.end and self.end > other.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def billable_hours(self) -> int:
        """Duration rounded up to whole hours, never less than one"""
        hours, remainder = divmod(self.duration, timedelta(hours=1))
        if remainder:
            hours += 1
        return max(1, hours)

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    def __repr__(self):
        return f"TimeWindow({self.start!r}, {self.end!r})"
