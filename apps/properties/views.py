"""Property API views.

Properties and slots are managed elsewhere; this API only exposes the
catalog together with slot availability and live occupancy.
"""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.permissions import is_staff_user
from apps.bookings.services import active_occupancy, available_slots

from .models import ParkingSlot, Property
from .serializers import (
    AvailabilityQuerySerializer,
    OccupancyQuerySerializer,
    ParkingSlotSerializer,
    PropertySerializer,
)


class PropertyViewSet(viewsets.ReadOnlyModelViewSet):
    """Viewset for browsing parking properties."""

    queryset = Property.objects.all()
    serializer_class = PropertySerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if is_staff_user(self.request.user):
            return qs
        return qs.filter(status=Property.Status.ACTIVATED)

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):  # type: ignore
        """Active slots free for the whole ``[start, end)`` window."""
        property_obj: Property = self.get_object()  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        start, end = query.validated_data["start"], query.validated_data["end"]

        slots = available_slots(property_obj.pk, start, end)
        return Response({
            "property_id": property_obj.pk,
            "start": start,
            "end": end,
            "slots": ParkingSlotSerializer(slots, many=True).data,
        })

    @action(detail=True, methods=["get"])
    def occupancy(self, request, pk=None):  # type: ignore
        """Slots held by a non-cancelled booking at ``at`` (defaults to now)."""
        property_obj: Property = self.get_object()  # type: ignore
        query = OccupancyQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        at = query.validated_data.get("at") or timezone.now()

        occupied = active_occupancy(property_obj.pk, at)
        slots = ParkingSlot.objects.filter(property=property_obj).order_by("slot_number")
        return Response({
            "property_id": property_obj.pk,
            "at": at,
            "occupied_slot_ids": sorted(occupied),
            "total_slots": slots.count(),
            "active_slots": slots.filter(is_active=True).count(),
            "slots": [
                dict(ParkingSlotSerializer(slot).data, occupied=slot.pk in occupied)
                for slot in slots
            ],
        })
