"""Admin registrations for the payment ledger (read-only)."""

from __future__ import annotations

from django.contrib import admin

from .models import PaymentEvent, PaymentSummary


@admin.register(PaymentEvent)
class PaymentEventAdmin(admin.ModelAdmin):
    list_display = ("booking", "method", "amount", "currency", "status", "provider", "recorded_by", "created_at")
    list_filter = ("method", "status", "provider")
    search_fields = ("booking__booking_number", "transaction_id", "recorded_by")

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False


@admin.register(PaymentSummary)
class PaymentSummaryAdmin(admin.ModelAdmin):
    list_display = ("booking", "total_amount", "online_paid", "cash_paid", "balance_due", "currency", "updated_at")
    search_fields = ("booking__booking_number",)

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
