"""Payment ledger and reconciliation services.

Both functions expect to run inside the caller's transaction (the Unit of
Work of the command that triggered them) with the booking row locked.
"""

from __future__ import annotations

from decimal import Decimal
import logging

from django.conf import settings  # type: ignore
from django.db.models import Sum  # type: ignore

from apps.bookings.domain.entities import (
    BookingChannel,
    BookingStatus,
    PaymentEventStatus,
    PaymentMethod,
)
from apps.bookings.domain.events import BookingPaid, PaymentRecorded
from apps.bookings.domain.exceptions import BookingClosed, ValidationError
from shared.domain.value_objects import quantize, to_decimal

from .gateway import card_gateway, generate_transaction_id
from .models import PaymentEvent, PaymentSummary

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _epsilon() -> Decimal:
    return settings.RESERVATIONS["PAID_EPSILON"]


def parse_amount(raw, field: str = "amount") -> Decimal:
    """Turn caller input into a 2-place Decimal, rejecting non-finite values."""
    try:
        return quantize(to_decimal(raw))
    except ValueError as exc:
        raise ValidationError(str(exc), field=field)


def resolve_provider(method: PaymentMethod, channel: BookingChannel) -> tuple[str, str]:
    """
    Decide the provider tag and transaction reference of a new payment.

    Online card payments are charged through the card gateway; staff
    entered payments are tagged with where the money was taken.
    """
    Provider = PaymentEvent.Provider
    if channel is BookingChannel.ADMIN:
        reference = generate_transaction_id() if method is PaymentMethod.CARD else ""
        return Provider.MANUAL_ADMIN_UPDATE, reference
    if channel is BookingChannel.COUNTER:
        if method is PaymentMethod.CARD:
            return Provider.COUNTER_CARD_TERMINAL, f"ctr_{generate_transaction_id()}"
        return Provider.COUNTER_CASH, ""
    return Provider.MOCK_CARD_GATEWAY, ""


def paid_totals(booking) -> tuple[Decimal, Decimal]:
    """Sum of PAID card and cash events of a booking."""
    rows = (
        PaymentEvent.objects.filter(booking=booking, status=PaymentEventStatus.PAID.value)
        .values("method")
        .annotate(total=Sum("amount"))
    )
    totals = {row["method"]: row["total"] or ZERO for row in rows}
    return (
        quantize(totals.get(PaymentMethod.CARD.value, ZERO)),
        quantize(totals.get(PaymentMethod.CASH.value, ZERO)),
    )


def record_payment(
    booking,
    amount,
    method,
    actor: str,
    *,
    channel: BookingChannel = BookingChannel.ONLINE,
) -> PaymentEvent:
    """
    Append a PAID event to the booking's ledger.

    Raises BookingClosed for cancelled bookings and ValidationError for a
    non-positive amount, an unknown method, or a payment that would take
    the paid total above the booking total.
    """
    if booking.is_cancelled():
        raise BookingClosed(
            f"Booking {booking.booking_number} is cancelled and accepts no payments",
            booking_id=booking.pk,
        )

    amount = parse_amount(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be positive", field="amount", amount=str(amount))

    try:
        method = PaymentMethod.parse(method)
    except ValueError as exc:
        raise ValidationError(str(exc), field="method")

    summary = PaymentSummary.objects.get(booking=booking)
    already_paid = sum(paid_totals(booking), ZERO)
    if already_paid + amount > summary.total_amount + _epsilon():
        raise ValidationError(
            "Payment exceeds the booking total",
            field="amount",
            total_amount=str(summary.total_amount),
            paid_amount=str(already_paid),
            amount=str(amount),
        )

    provider, transaction_id = resolve_provider(method, channel)
    if provider == PaymentEvent.Provider.MOCK_CARD_GATEWAY:
        charge = card_gateway.charge(amount, summary.currency, reference=booking.booking_number)
        transaction_id = charge.transaction_id

    event = PaymentEvent.objects.create(
        booking=booking,
        amount=amount,
        currency=summary.currency,
        method=method.value,
        status=PaymentEventStatus.PAID.value,
        provider=provider,
        transaction_id=transaction_id,
        recorded_by=actor,
    )

    logger.info(
        f"Recorded {method.value} payment of {amount} {summary.currency} "
        f"for booking {booking.booking_number} by {actor}"
    )

    booking.add_event(PaymentRecorded(
        aggregate_id=str(booking.pk),
        booking_id=booking.pk,
        payment_id=event.pk,
        amount=amount,
        method=method.value,
        actor=actor,
        balance_due=max(ZERO, summary.total_amount - already_paid - amount),
    ))
    return event


def reconcile(booking, actor: str, *, total_amount: Decimal | None = None) -> PaymentSummary:
    """
    Recompute the booking's payment summary from its ledger.

    The summary is created on first use, which is the only time
    ``total_amount`` is taken into account. A PENDING booking whose balance
    has dropped to zero (within the configured epsilon) is moved to PAID.
    Running it again without new events changes nothing.
    """
    summary = PaymentSummary.objects.filter(booking=booking).first()
    if summary is None:
        if total_amount is None:
            # Every booking gets its summary in the creating transaction
            raise PaymentSummary.DoesNotExist(f"Booking {booking.booking_number} has no payment summary")
        summary = PaymentSummary(
            booking=booking,
            total_amount=quantize(total_amount),
            currency=booking.property.currency,
        )

    online_paid, cash_paid = paid_totals(booking)
    balance_due = quantize(max(ZERO, summary.total_amount - online_paid - cash_paid))

    changed = (
        summary.pk is None
        or summary.online_paid != online_paid
        or summary.cash_paid != cash_paid
        or summary.balance_due != balance_due
    )
    if changed:
        summary.online_paid = online_paid
        summary.cash_paid = cash_paid
        summary.balance_due = balance_due
        summary.save()

    if booking.current_status() is BookingStatus.PENDING and balance_due <= _epsilon():
        booking.transition_to(BookingStatus.PAID, actor, note="Balance settled")
        booking.add_event(BookingPaid(
            aggregate_id=str(booking.pk),
            booking_id=booking.pk,
            total_amount=summary.total_amount,
            actor=actor,
        ))
        logger.info(f"Booking {booking.booking_number} fully paid, status PAID")

    return summary
