"""
Booking Command Handlers

These are the use cases of the reservation core.
They orchestrate the slot ledger, pricing, payment ledger and
reconciliation inside one transaction each.

Commands:
- CreateBookingCommand: Reserve slots for a time window, optionally with an advance
- RecordTopUpPaymentCommand: Raise the paid amount of an existing booking
- SetBookingStatusCommand: Explicit status change requested by a caller (cancellation)
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, List
import logging

from django.conf import settings
from django.db import IntegrityError
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork, run_with_retry
from shared.domain.value_objects import TimeWindow
from apps.bookings.domain.entities import (
    EXPLICITLY_SETTABLE,
    BookingCategory,
    BookingChannel,
    BookingStatus,
    PaymentMethod,
)
from apps.bookings.domain.events import BookingCreated
from apps.bookings.domain.exceptions import (
    AmountDecreaseRejected,
    BookingNotFound,
    InvalidTransition,
    PropertyInactive,
    SlotConflict,
    SlotInactive,
    ValidationError,
)
from apps.bookings.domain.pricing import PricingCalculator, pricing_calculator

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    ``advance_amount`` is charged in the same transaction; customers
    (ONLINE channel) can only pay by card and cannot override the total.
    """
    property_id: int
    slot_ids: List[int]
    start_time: datetime
    end_time: datetime
    actor: str
    channel: BookingChannel = BookingChannel.ONLINE
    customer_id: int | None = None
    customer_name: str = ''
    vehicle_number: str = ''
    advance_amount: Any = None
    advance_method: str = PaymentMethod.CARD.value
    explicit_total: Any = None
    idempotency_key: str | None = None


@dataclass
class RecordTopUpPaymentCommand:
    """
    Command to raise the paid amount of a booking

    Exactly one of ``paid_amount`` (new cumulative total paid across all
    methods) or ``collect_amount`` (amount handed over right now) is given.
    """
    booking_id: int
    method: str
    actor: str
    channel: BookingChannel = BookingChannel.ADMIN
    paid_amount: Any = None
    collect_amount: Any = None
    note: str = ''


@dataclass
class SetBookingStatusCommand:
    """Command to change a booking's status; only CANCELLED may be requested"""
    booking_id: int
    new_status: Any
    actor: str
    note: str = ''
    channel: BookingChannel = BookingChannel.ADMIN


@dataclass
class BookingResult:
    booking: Any
    summary: Any
    created: bool = True
    slot_ids: List[int] = field(default_factory=list)


# ===== Helpers =====

def _aware(value: datetime) -> datetime:
    if timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


def _load_locked_booking(booking_id):
    from apps.bookings.models import Booking

    booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
    if booking is None:
        raise BookingNotFound(f"Booking {booking_id} not found", booking_id=booking_id)
    return booking


def _log_staff_action(booking, channel: BookingChannel, actor: str, action, note: str = ''):
    from apps.bookings.models import BookingActionLog

    if channel.is_staff:
        BookingActionLog.objects.create(booking=booking, actor=actor, action=action, note=note[:255])


def _find_by_idempotency_key(command):
    """Keys are scoped to the actor that created the booking."""
    from apps.bookings.models import Booking

    return Booking.objects.filter(
        created_by=command.actor,
        idempotency_key=command.idempotency_key,
    ).first()


def _normalize_slot_ids(raw_ids) -> List[int]:
    try:
        slot_ids = sorted({int(slot_id) for slot_id in raw_ids or []})
    except (TypeError, ValueError):
        raise ValidationError("Slot ids must be integers", field='slot_ids')
    if not slot_ids:
        raise ValidationError("At least one slot must be selected", field='slot_ids')
    return slot_ids


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    Double booking prevention:
    1. Start database transaction (atomic)
    2. Lock the requested slot rows with SELECT FOR UPDATE, in id order
    3. Check the slot ledger for intersecting active assignments
    4. Insert booking and slot assignments
    5. PostgreSQL EXCLUDE constraint on the assignments as final safety net
    6. Deadlocks and serialization failures are retried a bounded number of times
    """

    def __init__(self, calculator: PricingCalculator = pricing_calculator):
        self.calculator = calculator

    def handle(self, command: CreateBookingCommand) -> BookingResult:
        """
        Handle booking creation

        Returns the booking with its payment summary. A replay carrying an
        already used idempotency key returns the original booking.

        Raises:
            ValidationError, PropertyInactive, SlotInactive, SlotConflict,
            StorageConflict
        """
        slot_ids = _normalize_slot_ids(command.slot_ids)
        start, end = _aware(command.start_time), _aware(command.end_time)
        try:
            window = TimeWindow(start, end)
        except ValueError as exc:
            raise ValidationError(str(exc), field='end_time')

        max_hours = settings.RESERVATIONS['MAX_BOOKING_HOURS']
        if window.duration > timedelta(hours=max_hours):
            raise ValidationError(
                f"Bookings cannot be longer than {max_hours} hours",
                field='end_time',
            )

        from apps.finances.services import parse_amount

        advance = Decimal('0.00')
        if command.advance_amount not in (None, ''):
            advance = parse_amount(command.advance_amount, field='advance_amount')
        if advance < 0:
            raise ValidationError("Advance amount cannot be negative", field='advance_amount')

        try:
            method = PaymentMethod.parse(command.advance_method or PaymentMethod.CARD)
        except ValueError as exc:
            raise ValidationError(str(exc), field='advance_method')
        if method is PaymentMethod.CASH and not command.channel.is_staff:
            raise ValidationError("Online bookings can only be paid by card", field='advance_method')

        explicit_total = command.explicit_total
        if explicit_total not in (None, '') and not command.channel.is_staff:
            logger.warning(
                f"Ignoring total override from {command.actor} on {command.channel.value} channel"
            )
            explicit_total = None

        if command.idempotency_key:
            existing = _find_by_idempotency_key(command)
            if existing is not None:
                return self._replay(existing)

        logger.info(
            f"Creating booking for property {command.property_id}, slots {slot_ids}, "
            f"window {window} via {command.channel.value} by {command.actor}"
        )

        try:
            result = run_with_retry(
                lambda: self._create(command, slot_ids, window, advance, method, explicit_total)
            )
        except IntegrityError:
            if command.idempotency_key:
                existing = _find_by_idempotency_key(command)
                if existing is not None:
                    return self._replay(existing)
            raise

        logger.info(
            f"Booking created successfully: {result.booking.booking_number} "
            f"(ID: {result.booking.pk}, status {result.booking.status})"
        )
        return result

    def _replay(self, booking) -> BookingResult:
        logger.info(f"Idempotent replay of booking {booking.booking_number}")
        return BookingResult(
            booking=booking,
            summary=booking.payment_summary,
            created=False,
            slot_ids=sorted(booking.slot_assignments.values_list('slot_id', flat=True)),
        )

    def _create(self, command, slot_ids, window, advance, method, explicit_total) -> BookingResult:
        from apps.bookings.models import Booking, BookingActionLog, BookingSlot, BookingStatusHistory
        from apps.bookings.services import conflicting_slot_ids, lock_slots
        from apps.finances.services import reconcile, record_payment
        from apps.properties.models import Property

        with DjangoUnitOfWork() as uow:
            property_obj = Property.objects.filter(pk=command.property_id).first()
            if property_obj is None:
                raise ValidationError(f"Property {command.property_id} not found", field='property_id')
            if not property_obj.is_activated:
                raise PropertyInactive(
                    f"Property {property_obj.name} is not accepting bookings",
                    property_id=property_obj.pk,
                    status=property_obj.status,
                )

            slots = lock_slots(slot_ids)
            foreign = sorted(
                set(slot_ids) - {slot.pk for slot in slots if slot.property_id == property_obj.pk}
            )
            if foreign:
                raise ValidationError(
                    "Selected slots do not belong to this property",
                    field='slot_ids',
                    slot_ids=foreign,
                )
            inactive = [slot.pk for slot in slots if not slot.is_active]
            if inactive:
                raise SlotInactive(slot_ids=inactive)

            conflicts = conflicting_slot_ids(slot_ids, window.start, window.end)
            if conflicts:
                logger.info(f"Slot conflict for slots {sorted(conflicts)} in window {window}")
                raise SlotConflict(slot_ids=sorted(conflicts))

            try:
                quote = self.calculator.price(property_obj, len(slots), window, explicit_total)
            except ValueError as exc:
                raise ValidationError(str(exc), field='property_id', property_id=property_obj.pk)
            if advance > quote.total.amount:
                raise ValidationError(
                    "Advance amount exceeds the booking total",
                    field='advance_amount',
                    total_amount=str(quote.total.amount),
                )

            booking = Booking(
                customer_id=command.customer_id,
                customer_name=command.customer_name,
                vehicle_number=command.vehicle_number,
                property=property_obj,
                start_time=window.start,
                end_time=window.end,
                status=BookingStatus.PENDING.value,
                category=BookingCategory.from_slot_types(slot.slot_type for slot in slots).value,
                channel=command.channel.value,
                idempotency_key=command.idempotency_key or None,
                created_by=command.actor,
            )
            booking.save()

            try:
                BookingSlot.objects.bulk_create([
                    BookingSlot(
                        booking=booking,
                        slot=slot,
                        start_time=window.start,
                        end_time=window.end,
                    )
                    for slot in slots
                ])
            except IntegrityError as exc:
                logger.warning(f"Storage rejected overlapping assignment for slots {slot_ids}: {exc}")
                raise SlotConflict(slot_ids=slot_ids)

            BookingStatusHistory.objects.create(
                booking=booking,
                old_status=None,
                new_status=BookingStatus.PENDING.value,
                changed_by=command.actor,
                note='Booking created',
            )

            booking.add_event(BookingCreated(
                aggregate_id=str(booking.pk),
                booking_id=booking.pk,
                property_id=property_obj.pk,
                slot_ids=slot_ids,
                total_amount=quote.total.amount,
                channel=command.channel.value,
                actor=command.actor,
            ))

            summary = reconcile(booking, command.actor, total_amount=quote.total.amount)
            _log_staff_action(
                booking, command.channel, command.actor, BookingActionLog.Action.BOOKING_CREATED,
                note=f"Total {quote.total.amount} {quote.total.currency}",
            )

            if advance > 0:
                record_payment(booking, advance, method, command.actor, channel=command.channel)
                summary = reconcile(booking, command.actor)
                _log_staff_action(
                    booking, command.channel, command.actor, BookingActionLog.Action.PAYMENT_COLLECTED,
                    note=f"Advance {advance} {method.value}",
                )

            uow.collect_events(booking)

        return BookingResult(booking=booking, summary=summary, created=True, slot_ids=slot_ids)


class RecordTopUpPaymentHandler:
    """
    Handler for top-up payments (counter collection, admin card capture)

    The recorded paid amount only ever grows: the difference between the
    requested cumulative amount and what is already recorded is appended
    to the ledger as one PaymentEvent.
    """

    def handle(self, command: RecordTopUpPaymentCommand):
        """
        Returns: Reconciled PaymentSummary

        Raises:
            BookingNotFound, BookingClosed, AmountDecreaseRejected, ValidationError
        """
        from apps.finances.services import parse_amount

        has_cumulative = command.paid_amount not in (None, '')
        has_delta = command.collect_amount not in (None, '')
        if has_cumulative == has_delta:
            raise ValidationError(
                "Provide either paid_amount or collect_amount",
                field='paid_amount',
            )

        if has_cumulative:
            requested = parse_amount(command.paid_amount, field='paid_amount')
            if requested < 0:
                raise ValidationError("Paid amount cannot be negative", field='paid_amount')
        else:
            requested = parse_amount(command.collect_amount, field='collect_amount')
            if requested < 0:
                raise ValidationError("Collected amount cannot be negative", field='collect_amount')

        try:
            method = PaymentMethod.parse(command.method)
        except ValueError as exc:
            raise ValidationError(str(exc), field='method')

        return run_with_retry(lambda: self._top_up(command, requested, has_cumulative, method))

    def _top_up(self, command, requested: Decimal, is_cumulative: bool, method: PaymentMethod):
        from apps.bookings.domain.exceptions import BookingClosed
        from apps.bookings.models import BookingActionLog
        from apps.finances.services import reconcile, record_payment

        with DjangoUnitOfWork() as uow:
            booking = _load_locked_booking(command.booking_id)
            if booking.is_cancelled():
                raise BookingClosed(
                    f"Booking {booking.booking_number} is cancelled and accepts no payments",
                    booking_id=booking.pk,
                )

            summary = reconcile(booking, command.actor)
            recorded = summary.paid_amount
            target = requested if is_cumulative else recorded + requested

            if target < recorded:
                logger.warning(
                    f"Rejected paid amount decrease on booking {booking.booking_number}: "
                    f"{recorded} -> {target} by {command.actor}"
                )
                raise AmountDecreaseRejected(
                    recorded_amount=str(recorded),
                    requested_amount=str(target),
                )

            delta = target - recorded
            if delta > 0:
                record_payment(booking, delta, method, command.actor, channel=command.channel)
                summary = reconcile(booking, command.actor)
                _log_staff_action(
                    booking, command.channel, command.actor, BookingActionLog.Action.PAYMENT_COLLECTED,
                    note=command.note or f"Collected {delta} {method.value}",
                )
            else:
                logger.info(f"No new payment for booking {booking.booking_number}; paid amount unchanged")

            uow.collect_events(booking)

        return summary


class SetBookingStatusHandler:
    """Handler for explicit status changes (cancellation by customer or staff)"""

    def handle(self, command: SetBookingStatusCommand):
        """
        Returns: The updated Booking

        Raises:
            ValidationError (unknown status), InvalidTransition, BookingNotFound
        """
        try:
            new_status = BookingStatus.parse(command.new_status)
        except ValueError as exc:
            raise ValidationError(str(exc), field='status')

        if new_status not in EXPLICITLY_SETTABLE:
            raise InvalidTransition(
                f"Status {new_status.value} cannot be set directly",
                requested_status=new_status.value,
            )

        return run_with_retry(lambda: self._apply(command, new_status))

    def _apply(self, command, new_status: BookingStatus):
        from apps.bookings.models import BookingActionLog

        with DjangoUnitOfWork() as uow:
            booking = _load_locked_booking(command.booking_id)
            old_status = booking.status
            booking.transition_to(new_status, command.actor, command.note)
            _log_staff_action(
                booking, command.channel, command.actor, BookingActionLog.Action.STATUS_CHANGED,
                note=command.note or f"{old_status} -> {new_status.value}",
            )
            uow.collect_events(booking)

        logger.info(
            f"Booking {booking.booking_number} moved {old_status} -> {new_status.value} by {command.actor}"
        )
        return booking
