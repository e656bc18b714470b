"""Serializers for the parking catalog and slot availability."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import ParkingSlot, Property


class ParkingSlotSerializer(serializers.ModelSerializer):
    zone = serializers.SerializerMethodField()

    class Meta:
        model = ParkingSlot
        fields = ["id", "slot_number", "slot_type", "is_active", "zone"]
        read_only_fields = fields

    def get_zone(self, obj: ParkingSlot) -> str:
        return obj.zone()


class PropertySerializer(serializers.ModelSerializer):
    """Read-only view of a parking property and its rates."""

    slot_count = serializers.IntegerField(source="slots.count", read_only=True)

    class Meta:
        model = Property
        fields = [
            "id",
            "name",
            "address",
            "status",
            "hourly_rate",
            "daily_rate",
            "currency",
            "slot_count",
        ]
        read_only_fields = fields


class AvailabilityQuerySerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()

    def validate(self, attrs):  # type: ignore
        if attrs["start"] >= attrs["end"]:
            raise serializers.ValidationError({"end": "End must be after start."})
        return attrs


class OccupancyQuerySerializer(serializers.Serializer):
    at = serializers.DateTimeField(required=False)
