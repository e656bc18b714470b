"""API views for the payment ledger.

Customers can read the ledger of their own bookings. Only staff (counter
and admin) may record top-up payments; each top-up goes through the
reservation core so the summary and booking status stay reconciled.
"""

from __future__ import annotations

import logging

from rest_framework import permissions, status  # type: ignore
from rest_framework.generics import get_object_or_404  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.application.command_handlers import RecordTopUpPaymentCommand, RecordTopUpPaymentHandler
from apps.bookings.domain.entities import BookingChannel
from apps.bookings.models import Booking
from apps.bookings.permissions import IsBookingStakeholder, actor_for, is_staff_user

from .serializers import PaymentEventSerializer, PaymentSummarySerializer, TopUpPaymentSerializer

logger = logging.getLogger(__name__)


class BookingPaymentsView(APIView):
    """Ledger and summary of one booking; POST records a staff top-up."""

    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]

    def get_booking(self, booking_id: int) -> Booking:
        booking = get_object_or_404(Booking.objects.select_related("payment_summary"), pk=booking_id)
        self.check_object_permissions(self.request, booking)
        return booking

    def _ledger(self, booking: Booking) -> dict:
        return {
            "booking_id": booking.pk,
            "booking_number": booking.booking_number,
            "status": booking.status,
            "summary": PaymentSummarySerializer(booking.payment_summary).data,
            "events": PaymentEventSerializer(booking.payment_events.all(), many=True).data,
        }

    def get(self, request, booking_id: int):  # type: ignore
        booking = self.get_booking(booking_id)
        return Response(self._ledger(booking))

    def post(self, request, booking_id: int):  # type: ignore
        if not is_staff_user(request.user):
            return Response(
                {"detail": "Only counter or admin staff can record payments."},
                status=status.HTTP_403_FORBIDDEN,
            )
        booking = self.get_booking(booking_id)

        serializer = TopUpPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        RecordTopUpPaymentHandler().handle(RecordTopUpPaymentCommand(
            booking_id=booking.pk,
            method=data["method"],
            actor=actor_for(request.user),
            channel=BookingChannel(data["channel"]),
            paid_amount=data.get("paid_amount"),
            collect_amount=data.get("collect_amount"),
            note=data.get("note", ""),
        ))

        booking = Booking.objects.select_related("payment_summary").get(pk=booking.pk)
        return Response(self._ledger(booking), status=status.HTTP_200_OK)
