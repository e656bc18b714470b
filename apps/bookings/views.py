"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .application.command_handlers import (
    CreateBookingCommand,
    CreateBookingHandler,
    SetBookingStatusCommand,
    SetBookingStatusHandler,
)
from .domain.entities import BookingChannel, BookingStatus
from .filters import BookingFilterSet
from .models import Booking
from .permissions import IsBookingStakeholder, actor_for, channel_for, is_staff_user
from .serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusSerializer,
)


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Create, list and inspect bookings; cancel them through actions."""

    queryset = (
        Booking.objects.select_related("property", "payment_summary")
        .prefetch_related("slot_assignments__slot", "status_history")
        .all()
    )
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_class = BookingFilterSet

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "cancel":
            return BookingCancelSerializer
        if self.action == "set_status":
            return BookingStatusSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if is_staff_user(user):
            return qs
        return qs.filter(customer=user)

    def _render(self, booking: Booking, status_code=status.HTTP_200_OK) -> Response:
        fresh = self.get_queryset().get(pk=booking.pk)
        data = BookingSerializer(fresh, context=self.get_serializer_context()).data
        return Response(data, status=status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = request.user
        staff = is_staff_user(user)

        command = CreateBookingCommand(
            property_id=data["property"],
            slot_ids=data["slot_ids"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            actor=actor_for(user),
            channel=channel_for(user, data.get("channel")),
            customer_id=None if staff else user.pk,
            customer_name=data.get("customer_name", "") or ("" if staff else user.get_username()),
            vehicle_number=data.get("vehicle_number", ""),
            advance_amount=data.get("advance_amount"),
            advance_method=data.get("advance_method"),
            explicit_total=data.get("total_amount") if staff else None,
            idempotency_key=data.get("idempotency_key") or request.headers.get("Idempotency-Key") or None,
        )
        result = CreateBookingHandler().handle(command)

        return self._render(
            result.booking,
            status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        )

    def _change_status(self, booking: Booking, new_status, note: str) -> Response:
        user = self.request.user
        channel = BookingChannel.ADMIN if is_staff_user(user) else BookingChannel.ONLINE
        updated = SetBookingStatusHandler().handle(SetBookingStatusCommand(
            booking_id=booking.pk,
            new_status=new_status,
            actor=actor_for(user),
            note=note,
            channel=channel,
        ))
        return self._render(updated)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._change_status(booking, BookingStatus.CANCELLED, serializer.validated_data["note"])

    @action(
        detail=True,
        methods=["post"],
        url_path="status",
        permission_classes=[permissions.IsAdminUser],
    )
    def set_status(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._change_status(
            booking,
            serializer.validated_data["status"],
            serializer.validated_data["note"],
        )
