"""Access rules shared by the booking and payment endpoints."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore

from .domain.entities import BookingChannel


def is_staff_user(user) -> bool:
    return bool(getattr(user, "is_staff", False) or getattr(user, "is_superuser", False))


def actor_for(user) -> str:
    """Opaque actor string recorded in history, ledger and action logs."""
    role = "staff" if is_staff_user(user) else "customer"
    return f"{role}:{user.pk}"


def channel_for(user, requested: str | None = None) -> BookingChannel:
    """Customers always book ONLINE; staff default to the counter."""
    if not is_staff_user(user):
        return BookingChannel.ONLINE
    if requested:
        return BookingChannel(requested)
    return BookingChannel.COUNTER


class IsBookingStakeholder(permissions.BasePermission):
    """Customers see their own bookings, staff see everything."""

    def has_object_permission(self, request, view, obj):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if is_staff_user(user):
            return True
        return obj.customer_id == user.id
