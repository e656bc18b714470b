"""Tests for the reservation command handlers."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
import re
import threading

import pytest
from django.db import IntegrityError, OperationalError, connection, connections

import shared.application.message_bus as message_bus_module
from apps.bookings.application.command_handlers import (
    CreateBookingCommand,
    CreateBookingHandler,
    RecordTopUpPaymentCommand,
    RecordTopUpPaymentHandler,
    SetBookingStatusCommand,
    SetBookingStatusHandler,
)
from apps.bookings.domain.entities import BookingChannel
from apps.bookings.domain.events import BookingCancelled, BookingCreated, BookingPaid, PaymentRecorded
from apps.bookings.domain.exceptions import (
    AmountDecreaseRejected,
    BookingClosed,
    BookingNotFound,
    InvalidTransition,
    PropertyInactive,
    SlotConflict,
    SlotInactive,
    StorageConflict,
    ValidationError,
)
from apps.bookings.domain.pricing import pricing_calculator
from apps.bookings.models import Booking, BookingActionLog, BookingSlot, BookingStatusHistory
from apps.finances.models import PaymentEvent, PaymentSummary
from apps.properties.models import ParkingSlot, Property
from shared.application.message_bus import MessageBus

pytestmark = pytest.mark.django_db


def create(parking_property, slot_ids, start, end, **kwargs):
    kwargs.setdefault("actor", "customer:1")
    return CreateBookingHandler().handle(CreateBookingCommand(
        property_id=parking_property.pk,
        slot_ids=slot_ids,
        start_time=start,
        end_time=end,
        **kwargs,
    ))


def top_up(booking, method="CASH", **kwargs):
    return RecordTopUpPaymentHandler().handle(RecordTopUpPaymentCommand(
        booking_id=booking.pk,
        method=method,
        actor="staff:9",
        channel=BookingChannel.COUNTER,
        **kwargs,
    ))


def cancel(booking, actor="staff:9", note=""):
    return SetBookingStatusHandler().handle(SetBookingStatusCommand(
        booking_id=booking.pk,
        new_status="CANCELLED",
        actor=actor,
        note=note,
    ))


def assert_summary_invariant(summary):
    assert summary.online_paid + summary.cash_paid + summary.balance_due == summary.total_amount
    assert summary.balance_due >= 0


# ===== Creation =====

def test_hourly_booking_without_advance_stays_pending(parking_property, slots, at):
    result = create(parking_property, [slots[0].pk], at(10), at(12))

    booking = result.booking
    assert booking.status == "PENDING"
    assert booking.booking_number.startswith("BK-")
    assert result.summary.total_amount == Decimal("600.00")
    assert result.summary.balance_due == Decimal("600.00")
    assert_summary_invariant(result.summary)

    history = list(booking.status_history.all())
    assert [(h.old_status, h.new_status) for h in history] == [(None, "PENDING")]
    assert BookingSlot.objects.filter(booking=booking, blocks_slot=True).count() == 1


def test_daily_rate_for_three_slots_over_26_hours(parking_property, slots, at):
    result = create(parking_property, [slots[0].pk, slots[1].pk, slots[2].pk], at(10), at(12, day=11))

    assert result.summary.total_amount == Decimal("6000.00")
    assert result.booking.category == "EV"


def test_full_online_advance_promotes_to_paid(parking_property, slots, at):
    result = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount="600")

    assert result.booking.status == "PAID"
    assert result.summary.online_paid == Decimal("600.00")
    assert result.summary.balance_due == Decimal("0.00")
    event = PaymentEvent.objects.get(booking=result.booking)
    assert event.provider == PaymentEvent.Provider.MOCK_CARD_GATEWAY
    assert re.fullmatch(r"txn_\d+_[0-9a-f]{6}", event.transaction_id)
    transitions = [(h.old_status, h.new_status) for h in result.booking.status_history.all()]
    assert transitions == [(None, "PENDING"), ("PENDING", "PAID")]


def test_partial_advance_keeps_booking_pending(parking_property, slots, at):
    result = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount=Decimal("200"))

    assert result.booking.status == "PENDING"
    assert result.summary.balance_due == Decimal("400.00")
    assert_summary_invariant(result.summary)


def test_duplicate_slot_ids_are_collapsed(parking_property, slots, at):
    result = create(parking_property, [slots[0].pk, slots[0].pk], at(10), at(12))

    assert result.slot_ids == [slots[0].pk]
    assert result.summary.total_amount == Decimal("600.00")


def test_overlapping_request_is_rejected(parking_property, slots, at):
    create(parking_property, [slots[0].pk], at(10), at(12))

    with pytest.raises(SlotConflict) as excinfo:
        create(parking_property, [slots[1].pk, slots[0].pk], at(11), at(13))

    assert excinfo.value.details["slot_ids"] == [slots[0].pk]
    assert Booking.objects.count() == 1


def test_back_to_back_bookings_are_allowed(parking_property, slots, at):
    create(parking_property, [slots[0].pk], at(10), at(12))
    result = create(parking_property, [slots[0].pk], at(12), at(14))

    assert result.booking.status == "PENDING"


def test_only_one_of_identical_requests_succeeds(parking_property, slots, at):
    outcomes = []
    for _ in range(5):
        try:
            create(parking_property, [slots[0].pk, slots[1].pk], at(10), at(12))
            outcomes.append("ok")
        except SlotConflict:
            outcomes.append("conflict")

    assert outcomes.count("ok") == 1
    assert BookingSlot.objects.filter(blocks_slot=True).count() == 2


@pytest.mark.skipif(
    connection.vendor != "postgresql",
    reason="concurrent writers need PostgreSQL row locks and the slot exclusion constraint",
)
@pytest.mark.django_db(transaction=True)
def test_concurrent_overlapping_requests_book_each_slot_once(parking_property, slots, at):
    workers = 4
    barrier = threading.Barrier(workers)

    def attempt(index):
        barrier.wait(timeout=10)
        try:
            return create(
                parking_property,
                [slots[0].pk, slots[1].pk],
                at(10, minute=index * 10),
                at(12),
                actor=f"customer:{index}",
            )
        finally:
            connections.close_all()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(attempt, index) for index in range(workers)]
    errors = [future.exception() for future in futures]

    assert sum(error is None for error in errors) == 1
    assert all(isinstance(error, SlotConflict) for error in errors if error is not None)
    assert Booking.objects.count() == 1
    assert BookingSlot.objects.filter(blocks_slot=True).count() == 2


def test_inactive_property_is_rejected(parking_property, slots, at):
    parking_property.status = Property.Status.DEACTIVATED
    parking_property.save()

    with pytest.raises(PropertyInactive):
        create(parking_property, [slots[0].pk], at(10), at(12))


def test_slot_in_maintenance_is_rejected(parking_property, slots, at):
    slots[1].is_active = False
    slots[1].save()

    with pytest.raises(SlotInactive) as excinfo:
        create(parking_property, [slots[0].pk, slots[1].pk], at(10), at(12))

    assert excinfo.value.details["slot_ids"] == [slots[1].pk]


def test_slot_of_another_property_is_rejected(parking_property, slots, at):
    other = Property.objects.create(name="Other", status=Property.Status.ACTIVATED, hourly_rate=Decimal("100"))
    foreign = ParkingSlot.objects.create(property=other, slot_number="Z1")

    with pytest.raises(ValidationError):
        create(parking_property, [slots[0].pk, foreign.pk], at(10), at(12))


@pytest.mark.parametrize(
    "overrides",
    [
        {"slot_ids": []},
        {"end_hour": 10},
        {"end_hour": 9},
        {"advance_amount": "700"},
        {"advance_amount": "-5"},
        {"advance_amount": "NaN"},
        {"advance_method": "CASH"},
        {"advance_method": "CHEQUE"},
    ],
)
def test_invalid_requests_are_rejected(parking_property, slots, at, overrides):
    slot_ids = overrides.pop("slot_ids", [slots[0].pk])
    end_hour = overrides.pop("end_hour", 12)

    with pytest.raises(ValidationError):
        create(parking_property, slot_ids, at(10), at(end_hour), **overrides)

    assert Booking.objects.count() == 0


def test_booking_longer_than_limit_is_rejected(parking_property, slots, at, settings):
    settings.RESERVATIONS = dict(settings.RESERVATIONS, MAX_BOOKING_HOURS=24)

    with pytest.raises(ValidationError):
        create(parking_property, [slots[0].pk], at(10), at(11, day=11))


def test_customer_total_override_is_ignored(parking_property, slots, at):
    result = create(parking_property, [slots[0].pk], at(10), at(12), explicit_total="100")

    assert result.summary.total_amount == Decimal("600.00")


def test_counter_booking_with_override_and_cash(parking_property, slots, at):
    result = create(
        parking_property,
        [slots[3].pk],
        at(10),
        at(12),
        actor="staff:9",
        channel=BookingChannel.COUNTER,
        explicit_total="450",
        advance_amount="450",
        advance_method="cash",
        customer_name="Walk-in",
        vehicle_number="CAB-1234",
    )

    booking = result.booking
    assert booking.category == "CAR_WASH"
    assert booking.channel == "COUNTER"
    assert booking.status == "PAID"
    assert result.summary.cash_paid == Decimal("450.00")
    assert PaymentEvent.objects.get(booking=booking).provider == PaymentEvent.Provider.COUNTER_CASH
    actions = set(BookingActionLog.objects.filter(booking=booking).values_list("action", flat=True))
    assert actions == {"BOOKING_CREATED", "PAYMENT_COLLECTED"}


def test_idempotency_key_returns_original_booking(parking_property, slots, at):
    first = create(parking_property, [slots[0].pk], at(10), at(12), idempotency_key="req-1")
    replay = create(parking_property, [slots[0].pk], at(10), at(12), idempotency_key="req-1")

    assert first.created
    assert not replay.created
    assert replay.booking.pk == first.booking.pk
    assert replay.slot_ids == [slots[0].pk]
    assert Booking.objects.count() == 1


def test_idempotency_key_is_scoped_to_actor(parking_property, slots, at):
    first = create(parking_property, [slots[0].pk], at(10), at(12), idempotency_key="req-1")
    other = create(
        parking_property, [slots[1].pk], at(10), at(12),
        actor="customer:2", idempotency_key="req-1",
    )

    assert other.created
    assert other.booking.pk != first.booking.pk
    assert other.booking.created_by == "customer:2"
    assert Booking.objects.count() == 2


def test_booking_on_property_with_other_currency(at):
    rupee_lot = Property.objects.create(
        name="Marine Drive Parking",
        status=Property.Status.ACTIVATED,
        hourly_rate=Decimal("300"),
        currency="INR",
    )
    slot = ParkingSlot.objects.create(property=rupee_lot, slot_number="A1")

    result = create(rupee_lot, [slot.pk], at(10), at(12), advance_amount="100")

    assert result.summary.currency == "INR"
    assert result.summary.total_amount == Decimal("600.00")
    assert PaymentEvent.objects.get(booking=result.booking).currency == "INR"


def test_pricing_failure_is_a_validation_error(parking_property, slots, at, monkeypatch):
    def broken(*args, **kwargs):
        raise ValueError("Currency is required")

    monkeypatch.setattr(pricing_calculator, "price", broken)

    with pytest.raises(ValidationError):
        create(parking_property, [slots[0].pk], at(10), at(12))

    assert Booking.objects.count() == 0


def test_storage_rejection_is_reported_as_conflict(parking_property, slots, at, monkeypatch):
    def reject(*args, **kwargs):
        raise IntegrityError("conflicting key value violates exclusion constraint")

    monkeypatch.setattr(BookingSlot.objects, "bulk_create", reject)

    with pytest.raises(SlotConflict):
        create(parking_property, [slots[0].pk], at(10), at(12))

    assert Booking.objects.count() == 0
    assert PaymentSummary.objects.count() == 0


def test_storage_failures_are_retried_then_surface(parking_property, slots, at, monkeypatch):
    calls = []

    def deadlock(*args, **kwargs):
        calls.append(1)
        raise OperationalError("deadlock detected")

    monkeypatch.setattr(CreateBookingHandler, "_create", deadlock)

    with pytest.raises(StorageConflict) as excinfo:
        create(parking_property, [slots[0].pk], at(10), at(12))

    assert len(calls) == 3
    assert excinfo.value.retryable


def test_transient_storage_failure_is_retried(parking_property, slots, at, monkeypatch):
    original = CreateBookingHandler._create
    calls = []

    def flaky(self, *args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("could not serialize access")
        return original(self, *args, **kwargs)

    monkeypatch.setattr(CreateBookingHandler, "_create", flaky)

    result = create(parking_property, [slots[0].pk], at(10), at(12))

    assert len(calls) == 2
    assert result.booking.pk is not None


def test_events_are_published_after_commit(
    parking_property, slots, at, monkeypatch, django_capture_on_commit_callbacks
):
    bus = MessageBus()
    received = []
    for event_type in (BookingCreated, PaymentRecorded, BookingPaid, BookingCancelled):
        bus.register_event_handler(event_type, received.append)
    monkeypatch.setattr(message_bus_module, "message_bus", bus)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        result = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount="600")
        assert received == []

    assert len(callbacks) == 1
    assert [type(event) for event in received] == [BookingCreated, PaymentRecorded, BookingPaid]
    assert received[0].booking_id == result.booking.pk


# ===== Top-ups =====

def test_cash_top_up_settles_balance(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12)).booking

    summary = top_up(booking, paid_amount="600")

    booking.refresh_from_db()
    assert booking.status == "PAID"
    assert summary.balance_due == Decimal("0.00")
    assert summary.cash_paid == Decimal("600.00")
    promotions = BookingStatusHistory.objects.filter(booking=booking, old_status="PENDING", new_status="PAID")
    assert promotions.count() == 1


def test_cumulative_amount_counts_all_methods(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount="200").booking

    summary = top_up(booking, paid_amount="500")

    assert summary.online_paid == Decimal("200.00")
    assert summary.cash_paid == Decimal("300.00")
    assert summary.balance_due == Decimal("100.00")
    assert_summary_invariant(summary)


def test_collect_amount_is_added_to_recorded_amount(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount="100").booking

    summary = top_up(booking, collect_amount="250")

    assert summary.paid_amount == Decimal("350.00")
    assert summary.balance_due == Decimal("250.00")
    assert BookingActionLog.objects.filter(booking=booking, action="PAYMENT_COLLECTED").count() == 1


def test_decrease_is_rejected_and_ledger_unchanged(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount="300").booking

    with pytest.raises(AmountDecreaseRejected):
        top_up(booking, paid_amount="200")

    assert PaymentEvent.objects.filter(booking=booking).count() == 1
    summary = PaymentSummary.objects.get(booking=booking)
    assert summary.paid_amount == Decimal("300.00")


def test_unchanged_amount_records_nothing(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount="300").booking

    summary = top_up(booking, paid_amount="300")

    assert PaymentEvent.objects.filter(booking=booking).count() == 1
    assert summary.balance_due == Decimal("300.00")


def test_overpayment_is_rejected(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12)).booking

    with pytest.raises(ValidationError):
        top_up(booking, paid_amount="700")

    assert PaymentEvent.objects.filter(booking=booking).count() == 0


@pytest.mark.parametrize("amounts", [{}, {"paid_amount": "100", "collect_amount": "100"}, {"collect_amount": "-1"}])
def test_top_up_requires_one_valid_amount(parking_property, slots, at, amounts):
    booking = create(parking_property, [slots[0].pk], at(10), at(12)).booking

    with pytest.raises(ValidationError):
        top_up(booking, **amounts)


def test_top_up_unknown_booking(db):
    with pytest.raises(BookingNotFound):
        RecordTopUpPaymentHandler().handle(RecordTopUpPaymentCommand(
            booking_id=999, method="CASH", actor="staff:9", paid_amount="10",
        ))


def test_cancelled_booking_refuses_top_ups(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount="200").booking
    cancel(booking)

    with pytest.raises(BookingClosed):
        top_up(booking, paid_amount="600")
    with pytest.raises(BookingClosed):
        top_up(booking, collect_amount="100")

    assert PaymentEvent.objects.filter(booking=booking).count() == 1
    summary = PaymentSummary.objects.get(booking=booking)
    assert summary.balance_due == Decimal("400.00")


# ===== Status changes =====

def test_cancel_paid_booking_keeps_payments_and_frees_slots(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12), advance_amount="600").booking

    cancelled = cancel(booking, note="Customer called")

    assert cancelled.status == "CANCELLED"
    assert PaymentSummary.objects.get(booking=booking).online_paid == Decimal("600.00")
    assert not BookingSlot.objects.filter(booking=booking, blocks_slot=True).exists()
    transitions = list(booking.status_history.values_list("old_status", "new_status"))
    assert transitions == [(None, "PENDING"), ("PENDING", "PAID"), ("PAID", "CANCELLED")]

    rebooked = create(parking_property, [slots[0].pk], at(10), at(12))
    assert rebooked.booking.pk != booking.pk


def test_cancelled_is_terminal(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12)).booking
    cancel(booking)

    with pytest.raises(InvalidTransition):
        cancel(booking)


def test_paid_cannot_be_requested_directly(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12)).booking

    with pytest.raises(InvalidTransition):
        SetBookingStatusHandler().handle(SetBookingStatusCommand(
            booking_id=booking.pk, new_status="PAID", actor="staff:9",
        ))

    booking.refresh_from_db()
    assert booking.status == "PENDING"


def test_unknown_status_is_validation_error(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12)).booking

    with pytest.raises(ValidationError):
        SetBookingStatusHandler().handle(SetBookingStatusCommand(
            booking_id=booking.pk, new_status="ARCHIVED", actor="staff:9",
        ))


def test_staff_cancellation_is_logged(parking_property, slots, at):
    booking = create(parking_property, [slots[0].pk], at(10), at(12)).booking

    cancel(booking, note="No show")

    log = BookingActionLog.objects.get(booking=booking, action="STATUS_CHANGED")
    assert log.actor == "staff:9"
    assert log.note == "No show"
