"""URL routing for the finance domain."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import BookingPaymentsView

urlpatterns = [
    path(
        "bookings/<int:booking_id>/payments/",
        BookingPaymentsView.as_view(),
        name="booking-payments",
    ),
]
