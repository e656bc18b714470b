"""Slot ledger: which parking slots are held over which time windows.

Windows are half-open ``[start, end)``, so a booking ending at 12:00 and
another starting at 12:00 on the same slot do not clash. Only assignments
of non-cancelled bookings hold a slot.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from django.db import transaction  # type: ignore
from django.db.models import Q, QuerySet  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.properties.models import ParkingSlot

from .domain.entities import BookingStatus
from .domain.exceptions import ValidationError


BLOCKING_STATUSES = tuple(status.value for status in BookingStatus if status.blocks_slots)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _blocking_assignments(start: datetime, end: datetime, exclude_booking_id=None) -> QuerySet:
    from .models import BookingSlot  # Local import to prevent circular dependency

    if start >= end:
        raise ValidationError("Start time must be before end time", start=str(start), end=str(end))

    queryset = BookingSlot.objects.filter(
        blocks_slot=True,
        booking__status__in=BLOCKING_STATUSES,
    ).filter(Q(start_time__lt=end) & Q(end_time__gt=start))

    if exclude_booking_id is not None:
        queryset = queryset.exclude(booking_id=exclude_booking_id)
    return queryset


def conflicting_slot_ids(
    slot_ids: Iterable[int],
    start: datetime,
    end: datetime,
    *,
    exclude_booking_id=None,
) -> set[int]:
    """Return the requested slots already held by another booking in the window."""

    wanted = set(slot_ids)
    if not wanted:
        return set()
    assignments = _blocking_assignments(start, end, exclude_booking_id).filter(slot_id__in=wanted)
    return set(assignments.values_list("slot_id", flat=True))


def is_overlapping(
    slot_ids: Iterable[int],
    start: datetime,
    end: datetime,
    exclude_booking_id=None,
) -> bool:
    """True when any of the slots is held by an active booking intersecting the window."""

    return bool(conflicting_slot_ids(slot_ids, start, end, exclude_booking_id=exclude_booking_id))


def active_occupancy(property_id: int, as_of: datetime) -> set[int]:
    """Slots of a property held by a non-cancelled booking at ``as_of``."""

    from .models import BookingSlot

    assignments = BookingSlot.objects.filter(
        slot__property_id=property_id,
        blocks_slot=True,
        booking__status__in=BLOCKING_STATUSES,
        start_time__lte=as_of,
        end_time__gt=as_of,
    )
    return set(assignments.values_list("slot_id", flat=True))


def available_slots(property_id: int, start: datetime, end: datetime) -> QuerySet:
    """Active slots of a property that are free for the whole window."""

    taken = _blocking_assignments(start, end).filter(slot__property_id=property_id)
    return (
        ParkingSlot.objects.filter(property_id=property_id, is_active=True)
        .exclude(pk__in=taken.values("slot_id"))
        .order_by("slot_number")
    )


def lock_slots(slot_ids: Iterable[int]) -> list[ParkingSlot]:
    """
    Lock the slot rows for the rest of the current transaction.

    Rows are locked in id order so two requests for overlapping slot sets
    cannot deadlock each other. Outside an atomic block nothing is locked.
    """

    queryset = ParkingSlot.objects.filter(pk__in=set(slot_ids)).order_by("pk")
    return list(_lock_queryset_if_possible(queryset))
