"""Admin registrations for the parking catalog."""

from __future__ import annotations

from django.contrib import admin

from .models import ParkingSlot, Property


class ParkingSlotInline(admin.TabularInline):
    model = ParkingSlot
    extra = 0
    fields = ("slot_number", "slot_type", "is_active")


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("name", "address", "status", "hourly_rate", "daily_rate", "currency", "owner")
    list_filter = ("status", "currency")
    search_fields = ("name", "address", "owner__username")
    inlines = (ParkingSlotInline,)
    readonly_fields = ("created_at", "updated_at")


@admin.register(ParkingSlot)
class ParkingSlotAdmin(admin.ModelAdmin):
    list_display = ("slot_number", "property", "slot_type", "is_active")
    list_filter = ("slot_type", "is_active")
    search_fields = ("slot_number", "property__name")
