"""Booking models for the EasyPark reservation core."""

from __future__ import annotations

import secrets

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.base import Aggregate
from shared.domain.value_objects import TimeWindow

from .domain.entities import BookingCategory, BookingChannel, BookingStatus
from .domain.events import BookingCancelled
from .domain.exceptions import InvalidTransition


class Booking(Aggregate, models.Model):
    """Reservation of one or more parking slots for a contiguous time window."""

    booking_number = models.CharField(max_length=12, unique=True, editable=False)
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="parking_bookings",
    )
    customer_name = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("Walk-in customer name recorded at the counter."),
    )
    vehicle_number = models.CharField(max_length=20, blank=True)
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices(),
        default=BookingStatus.PENDING.value,
    )
    category = models.CharField(
        max_length=20,
        choices=BookingCategory.choices(),
        default=BookingCategory.NORMAL.value,
    )
    channel = models.CharField(
        max_length=20,
        choices=BookingChannel.choices(),
        default=BookingChannel.ONLINE.value,
    )
    idempotency_key = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text=_("Client supplied key; a replayed create by the same actor returns the original booking."),
    )
    created_by = models.CharField(max_length=150)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-start_time", "-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_window",
            ),
            models.UniqueConstraint(
                fields=["created_by", "idempotency_key"],
                name="booking_idempotency_key_per_actor",
            ),
        ]
        indexes = [
            models.Index(fields=["property", "start_time", "end_time"], name="booking_property_window_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_number} ({self.status})"

    @staticmethod
    def generate_booking_number() -> str:
        return f"BK-{secrets.token_hex(4).upper()}"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_number:
            self.booking_number = self.generate_booking_number()
        super().save(*args, **kwargs)

    def current_status(self) -> BookingStatus:
        return BookingStatus.parse(self.status)

    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    def transition_to(self, new_status: BookingStatus, actor: str, note: str = "") -> "BookingStatusHistory":
        """
        Move the booking through the status FSM and append the history entry.

        Cancelling also releases the slot assignments so the window can be
        booked again. Must run inside the caller's transaction.
        """
        old_status = self.current_status()
        if not old_status.can_transition_to(new_status):
            raise InvalidTransition(
                f"Cannot change booking {self.booking_number} from {old_status.value} to {new_status.value}",
                current_status=old_status.value,
                requested_status=new_status.value,
            )

        self.status = new_status.value
        self.save(update_fields=["status", "updated_at"])

        if new_status is BookingStatus.CANCELLED:
            self.slot_assignments.update(blocks_slot=False)

        entry = BookingStatusHistory.objects.create(
            booking=self,
            old_status=old_status.value,
            new_status=new_status.value,
            changed_by=actor,
            note=note,
        )

        if new_status is BookingStatus.CANCELLED:
            summary = getattr(self, "payment_summary", None)
            self.add_event(BookingCancelled(
                aggregate_id=str(self.pk),
                booking_id=self.pk,
                old_status=old_status.value,
                balance_due=summary.balance_due if summary else None,
                actor=actor,
                note=note,
            ))
        return entry


class BookingSlot(models.Model):
    """
    Assignment of one slot to a booking.

    The booking window is copied here so the database can refuse two
    blocking assignments of the same slot with intersecting windows
    (exclusion constraint on PostgreSQL). ``blocks_slot`` is cleared only
    by cancelling the booking.
    """

    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name="slot_assignments")
    slot = models.ForeignKey(
        "properties.ParkingSlot",
        on_delete=models.PROTECT,
        related_name="assignments",
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    blocks_slot = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Booked slot")
        verbose_name_plural = _("Booked slots")
        ordering = ["booking_id", "slot_id"]
        constraints = [
            models.UniqueConstraint(fields=["booking", "slot"], name="booking_slot_unique"),
        ]
        indexes = [
            models.Index(fields=["slot", "start_time", "end_time"], name="booking_slot_window_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.slot_id} for booking {self.booking_id}"


class BookingStatusHistory(models.Model):
    """Append-only audit trail of booking status transitions."""

    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name="status_history")
    old_status = models.CharField(max_length=20, choices=BookingStatus.choices(), null=True, blank=True)
    new_status = models.CharField(max_length=20, choices=BookingStatus.choices())
    changed_by = models.CharField(max_length=150)
    note = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Status change")
        verbose_name_plural = _("Status history")
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.booking_id}: {self.old_status} -> {self.new_status}"


class BookingActionLog(models.Model):
    """Trail of actions taken by counter and admin staff on a booking."""

    class Action(models.TextChoices):
        BOOKING_CREATED = "BOOKING_CREATED", _("Booking created")
        PAYMENT_COLLECTED = "PAYMENT_COLLECTED", _("Payment collected")
        STATUS_CHANGED = "STATUS_CHANGED", _("Status changed")

    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name="action_logs")
    actor = models.CharField(max_length=150)
    action = models.CharField(max_length=30, choices=Action.choices)
    note = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Staff action")
        verbose_name_plural = _("Staff actions")
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.action} on {self.booking_id} by {self.actor}"
