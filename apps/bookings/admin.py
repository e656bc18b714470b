"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, BookingActionLog, BookingSlot, BookingStatusHistory


class BookingSlotInline(admin.TabularInline):
    model = BookingSlot
    extra = 0
    fields = ("slot", "start_time", "end_time", "blocks_slot")
    readonly_fields = fields
    can_delete = False


class BookingStatusHistoryInline(admin.TabularInline):
    model = BookingStatusHistory
    extra = 0
    fields = ("old_status", "new_status", "changed_by", "note", "created_at")
    readonly_fields = fields
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    # Status changes must go through the reservation core, so everything is read-only here.
    list_display = (
        "booking_number",
        "property",
        "customer",
        "vehicle_number",
        "status",
        "category",
        "channel",
        "start_time",
        "end_time",
        "created_at",
    )
    list_filter = ("status", "category", "channel", "start_time")
    search_fields = ("booking_number", "vehicle_number", "customer_name", "property__name")
    readonly_fields = (
        "booking_number",
        "customer",
        "customer_name",
        "vehicle_number",
        "property",
        "start_time",
        "end_time",
        "status",
        "category",
        "channel",
        "idempotency_key",
        "created_by",
        "created_at",
        "updated_at",
    )
    inlines = (BookingSlotInline, BookingStatusHistoryInline)


@admin.register(BookingActionLog)
class BookingActionLogAdmin(admin.ModelAdmin):
    list_display = ("booking", "action", "actor", "created_at")
    list_filter = ("action",)
    search_fields = ("booking__booking_number", "actor")
