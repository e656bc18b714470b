"""
Booking Domain Vocabulary

Closed enums used by the reservation core:
- BookingStatus: FSM states for the booking lifecycle
- BookingCategory: Summary of the slot types a booking holds
- BookingChannel: Who created the booking (customer app, counter, admin)
- PaymentMethod / PaymentEventStatus: Payment ledger vocabulary

Every enum has one canonical spelling. Synonyms sent by older clients are
resolved through the explicit alias tables at the bottom of this module.
"""

from decimal import Decimal
from enum import Enum
from typing import Iterable


class BookingStatus(str, Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> PAID (balance due reached zero)
    - PENDING -> CANCELLED (customer or staff cancelled)
    - PAID -> CANCELLED (customer or staff cancelled, no refund here)

    CANCELLED is terminal.
    """
    PENDING = 'PENDING'
    PAID = 'PAID'
    CANCELLED = 'CANCELLED'

    @classmethod
    def parse(cls, raw) -> 'BookingStatus':
        return _lookup(BOOKING_STATUS_ALIASES, raw, 'booking status')

    @classmethod
    def choices(cls):
        return [(status.value, status.value.title()) for status in cls]

    def can_transition_to(self, target: 'BookingStatus') -> bool:
        return target in ALLOWED_TRANSITIONS[self]

    @property
    def blocks_slots(self) -> bool:
        """Only non-cancelled bookings hold their slots"""
        return self is not BookingStatus.CANCELLED


ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.PAID, BookingStatus.CANCELLED}),
    BookingStatus.PAID: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}

# Statuses a caller may request directly; PAID is only ever reached
# through reconciliation.
EXPLICITLY_SETTABLE = frozenset({BookingStatus.CANCELLED})


class BookingCategory(str, Enum):
    """Category tag derived from the slot types of a booking"""
    NORMAL = 'NORMAL'
    EV = 'EV'
    CAR_WASH = 'CAR_WASH'

    @classmethod
    def choices(cls):
        return [(category.value, category.value.replace('_', ' ').title()) for category in cls]

    @classmethod
    def from_slot_types(cls, slot_types: Iterable[str]) -> 'BookingCategory':
        """
        Derive the booking category

        A wash bay anywhere in the set wins, then an EV charger,
        otherwise the booking is a normal parking booking.
        """
        types = {getattr(slot_type, 'value', slot_type) for slot_type in slot_types}
        if cls.CAR_WASH.value in types:
            return cls.CAR_WASH
        if cls.EV.value in types:
            return cls.EV
        return cls.NORMAL


class BookingChannel(str, Enum):
    ONLINE = 'ONLINE'
    COUNTER = 'COUNTER'
    ADMIN = 'ADMIN'

    @classmethod
    def choices(cls):
        return [(channel.value, channel.value.title()) for channel in cls]

    @property
    def is_staff(self) -> bool:
        return self is not BookingChannel.ONLINE


class PaymentMethod(str, Enum):
    CARD = 'CARD'
    CASH = 'CASH'

    @classmethod
    def parse(cls, raw) -> 'PaymentMethod':
        return _lookup(PAYMENT_METHOD_ALIASES, raw, 'payment method')

    @classmethod
    def choices(cls):
        return [(method.value, method.value.title()) for method in cls]


class PaymentEventStatus(str, Enum):
    """Lifecycle of a payment event; only PAID events count toward the summary"""
    PAID = 'PAID'
    PENDING = 'PENDING'
    FAILED = 'FAILED'

    @classmethod
    def choices(cls):
        return [(status.value, status.value.title()) for status in cls]


class CollectionStatus(str, Enum):
    """How much of the total has been collected, for dashboards"""
    PAID = 'PAID'
    PARTIAL = 'PARTIAL'
    UNPAID = 'UNPAID'

    @classmethod
    def for_amounts(cls, total: Decimal, paid: Decimal, epsilon: Decimal) -> 'CollectionStatus':
        if paid <= epsilon:
            return cls.UNPAID
        if paid + epsilon >= total:
            return cls.PAID
        return cls.PARTIAL


BOOKING_STATUS_ALIASES = {
    'PENDING': BookingStatus.PENDING,
    'PAID': BookingStatus.PAID,
    'CANCELLED': BookingStatus.CANCELLED,
    'CANCELED': BookingStatus.CANCELLED,
}

PAYMENT_METHOD_ALIASES = {
    'CARD': PaymentMethod.CARD,
    'ONLINE': PaymentMethod.CARD,
    'CASH': PaymentMethod.CASH,
}


def _lookup(aliases: dict, raw, label: str):
    if isinstance(raw, Enum):
        raw = raw.value
    key = str(raw or '').strip().upper().replace('-', '_').replace(' ', '_')
    try:
        return aliases[key]
    except KeyError:
        raise ValueError(f"Unknown {label}: {raw!r}")
