"""
Booking Domain Events

Events that represent things that have happened in the reservation core.
These are published after successful transaction commits.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from shared.domain.base import DomainEvent


# ===== Booking Events =====

@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A new booking was created (always in PENDING)

    Triggers:
    - Customer confirmation
    - Counter dashboard refresh
    """
    booking_id: int
    property_id: int
    slot_ids: List[int]
    total_amount: Decimal
    channel: str
    actor: str


@dataclass
class BookingPaid(DomainEvent):
    """Event: Reconciliation found the balance settled (PENDING -> PAID)"""
    booking_id: int
    total_amount: Decimal
    actor: str


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled

    Slots are free again. Recorded payments stay untouched.
    """
    booking_id: int
    old_status: str
    balance_due: Decimal
    actor: str
    note: str = ''


# ===== Payment Events =====

@dataclass
class PaymentRecorded(DomainEvent):
    """Event: A payment was appended to the ledger"""
    booking_id: int
    payment_id: int
    amount: Decimal
    method: str
    actor: str
    balance_due: Decimal = field(default=Decimal('0.00'))
