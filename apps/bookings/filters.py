"""FilterSet definitions for booking listings."""

from __future__ import annotations

from datetime import datetime, time, timedelta

import django_filters  # type: ignore
from django.utils import timezone  # type: ignore

from .domain.entities import BookingCategory, BookingStatus
from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    """Filters used by the counter dashboard and customer history."""

    status = django_filters.CharFilter(method="filter_status")
    property = django_filters.NumberFilter(field_name="property_id", lookup_expr="exact")
    category = django_filters.ChoiceFilter(choices=BookingCategory.choices())
    # Bookings whose window intersects the given local day
    date = django_filters.DateFilter(method="filter_date")

    class Meta:
        model = Booking
        fields = ["status", "property", "category"]

    def filter_status(self, queryset, name, value):  # type: ignore
        try:
            return queryset.filter(status=BookingStatus.parse(value).value)
        except ValueError:
            return queryset.none()

    def filter_date(self, queryset, name, value):  # type: ignore
        day_start = timezone.make_aware(datetime.combine(value, time.min))
        day_end = day_start + timedelta(days=1)
        return queryset.filter(start_time__lt=day_end, end_time__gt=day_start)
