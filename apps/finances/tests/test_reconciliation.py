"""Tests for the payment ledger and reconciliation services."""

from decimal import Decimal
import re

import pytest

from apps.bookings.application.command_handlers import CreateBookingCommand, CreateBookingHandler
from apps.bookings.domain.entities import BookingChannel, BookingStatus, CollectionStatus, PaymentMethod
from apps.bookings.domain.exceptions import BookingClosed, ValidationError
from apps.bookings.models import BookingStatusHistory
from apps.finances.gateway import MockCardGateway, generate_transaction_id
from apps.finances.models import PaymentEvent, PaymentSummary
from apps.finances.services import paid_totals, reconcile, record_payment, resolve_provider

pytestmark = pytest.mark.django_db


@pytest.fixture
def booking(parking_property, slots, at):
    return CreateBookingHandler().handle(CreateBookingCommand(
        property_id=parking_property.pk,
        slot_ids=[slots[0].pk],
        start_time=at(10),
        end_time=at(12),
        actor="customer:1",
    )).booking


def test_reconcile_sums_paid_events_by_method(booking):
    record_payment(booking, "100", PaymentMethod.CARD, "staff:9", channel=BookingChannel.ADMIN)
    record_payment(booking, "150.50", "cash", "staff:9", channel=BookingChannel.COUNTER)
    PaymentEvent.objects.create(
        booking=booking,
        amount=Decimal("200"),
        method="CASH",
        status="FAILED",
        provider=PaymentEvent.Provider.COUNTER_CASH,
        recorded_by="staff:9",
    )

    summary = reconcile(booking, "staff:9")

    assert summary.online_paid == Decimal("100.00")
    assert summary.cash_paid == Decimal("150.50")
    assert summary.balance_due == Decimal("349.50")
    assert summary.online_paid + summary.cash_paid + summary.balance_due == summary.total_amount
    assert paid_totals(booking) == (Decimal("100.00"), Decimal("150.50"))


def test_reconcile_is_idempotent(booking):
    record_payment(booking, "600", "CASH", "staff:9", channel=BookingChannel.COUNTER)

    first = reconcile(booking, "staff:9")
    second = reconcile(booking, "staff:9")

    assert (first.online_paid, first.cash_paid, first.balance_due) == (
        second.online_paid,
        second.cash_paid,
        second.balance_due,
    )
    assert PaymentSummary.objects.filter(booking=booking).count() == 1
    assert BookingStatusHistory.objects.filter(booking=booking, new_status="PAID").count() == 1
    booking.refresh_from_db()
    assert booking.status == "PAID"


def test_reconcile_without_summary_is_an_internal_error(booking):
    PaymentSummary.objects.filter(booking=booking).delete()

    with pytest.raises(PaymentSummary.DoesNotExist):
        reconcile(booking, "staff:9")


def test_record_payment_rejects_non_positive_amounts(booking):
    for amount in ("0", "-10", "NaN", "Infinity"):
        with pytest.raises(ValidationError):
            record_payment(booking, amount, "CARD", "staff:9")
    assert not PaymentEvent.objects.filter(booking=booking).exists()


def test_record_payment_rejects_cancelled_booking(booking):
    booking.transition_to(BookingStatus.CANCELLED, "staff:9")

    with pytest.raises(BookingClosed):
        record_payment(booking, "100", "CASH", "staff:9")


def test_record_payment_rejects_overpayment(booking):
    record_payment(booking, "500", "CASH", "staff:9", channel=BookingChannel.COUNTER)

    with pytest.raises(ValidationError):
        record_payment(booking, "100.01", "CASH", "staff:9", channel=BookingChannel.COUNTER)


def test_online_card_payment_goes_through_gateway(booking):
    event = record_payment(booking, "100", "CARD", "customer:1")

    assert event.provider == PaymentEvent.Provider.MOCK_CARD_GATEWAY
    assert event.transaction_id.startswith("txn_")
    assert event.status == "PAID"
    assert event.currency == "LKR"


@pytest.mark.parametrize(
    "method, channel, provider",
    [
        (PaymentMethod.CARD, BookingChannel.COUNTER, "COUNTER_CARD_TERMINAL"),
        (PaymentMethod.CASH, BookingChannel.COUNTER, "COUNTER_CASH"),
        (PaymentMethod.CARD, BookingChannel.ADMIN, "MANUAL_ADMIN_UPDATE"),
        (PaymentMethod.CASH, BookingChannel.ADMIN, "MANUAL_ADMIN_UPDATE"),
    ],
)
def test_staff_payments_are_tagged_with_provider(method, channel, provider):
    tag, reference = resolve_provider(method, channel)

    assert tag == provider
    assert bool(reference) == (method is PaymentMethod.CARD)


def test_collection_status_and_method_label(booking):
    summary = PaymentSummary.objects.get(booking=booking)
    assert summary.collection_status is CollectionStatus.UNPAID
    assert summary.payment_method_label == "N/A"

    record_payment(booking, "100", "CARD", "customer:1")
    summary = reconcile(booking, "customer:1")
    assert summary.collection_status is CollectionStatus.PARTIAL
    assert summary.payment_method_label == "CARD"

    record_payment(booking, "500", "CASH", "staff:9", channel=BookingChannel.COUNTER)
    summary = reconcile(booking, "staff:9")
    assert summary.collection_status is CollectionStatus.PAID
    assert summary.payment_method_label == "CARD,CASH"


def test_gateway_transaction_reference_format():
    assert re.fullmatch(r"txn_\d{13}_[0-9a-f]{6}", generate_transaction_id())
    result = MockCardGateway().charge(Decimal("10"), "LKR")
    assert result.success
    assert result.transaction_id.startswith("txn_")
