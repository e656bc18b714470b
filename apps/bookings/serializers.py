"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.finances.serializers import PaymentSummarySerializer

from .domain.entities import BookingStatus, PaymentMethod
from .models import Booking, BookingSlot, BookingStatusHistory
from .permissions import is_staff_user


class BookingCreateSerializer(serializers.Serializer):
    """
    Reservation request.

    Customers pay an optional advance by card. Staff may also take cash,
    pick the channel and override the calculated total.
    """

    property = serializers.IntegerField(min_value=1)
    slot_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    vehicle_number = serializers.CharField(required=False, allow_blank=True, max_length=20, default="")
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    advance_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    advance_method = serializers.CharField(required=False, default=PaymentMethod.CARD.value)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    channel = serializers.ChoiceField(choices=["COUNTER", "ADMIN"], required=False)
    idempotency_key = serializers.CharField(required=False, allow_blank=True, max_length=64)

    def validate_advance_method(self, value: str) -> str:
        try:
            return PaymentMethod.parse(value).value
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))

    def validate(self, attrs):  # type: ignore
        user = self.context["request"].user
        if attrs["start_time"] >= attrs["end_time"]:
            raise serializers.ValidationError({"end_time": "End time must be after start time."})
        if not is_staff_user(user):
            if attrs.get("total_amount") is not None:
                raise serializers.ValidationError({"total_amount": "Only staff can set the booking total."})
            if attrs.get("advance_method") == PaymentMethod.CASH.value:
                raise serializers.ValidationError({"advance_method": "Online bookings can only be paid by card."})
            if attrs.get("channel"):
                raise serializers.ValidationError({"channel": "Only staff can choose the booking channel."})
        return attrs


class BookingSlotSerializer(serializers.ModelSerializer):
    slot_id = serializers.ReadOnlyField(source="slot.id")
    slot_number = serializers.ReadOnlyField(source="slot.slot_number")
    slot_type = serializers.ReadOnlyField(source="slot.slot_type")

    class Meta:
        model = BookingSlot
        fields = ["slot_id", "slot_number", "slot_type", "blocks_slot"]
        read_only_fields = fields


class BookingStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = BookingStatusHistory
        fields = ["old_status", "new_status", "changed_by", "note", "created_at"]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    """Booking with its slots, payment summary and status history."""

    customer_id = serializers.ReadOnlyField()
    property_id = serializers.ReadOnlyField()
    property_name = serializers.ReadOnlyField(source="property.name")
    slots = BookingSlotSerializer(source="slot_assignments", many=True, read_only=True)
    payment_summary = serializers.SerializerMethodField()
    status_history = BookingStatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "customer_id",
            "customer_name",
            "vehicle_number",
            "property_id",
            "property_name",
            "start_time",
            "end_time",
            "status",
            "category",
            "channel",
            "created_by",
            "slots",
            "payment_summary",
            "status_history",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_payment_summary(self, obj: Booking):
        summary = getattr(obj, "payment_summary", None)
        if summary is None:
            return None
        return PaymentSummarySerializer(summary).data


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    note = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")

    def validate_status(self, value: str) -> str:
        try:
            return BookingStatus.parse(value).value
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))


class BookingCancelSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
