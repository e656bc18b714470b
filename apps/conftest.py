"""Shared fixtures for the reservation test-suite."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.properties.models import ParkingSlot, Property


def local_dt(hour: int, day: int = 10, minute: int = 0) -> datetime:
    """Aware datetime on a fixed future date in the project time zone."""
    return timezone.make_aware(datetime(2030, 1, day, hour, minute))


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(username="counter", password="CounterPass123", is_staff=True)


@pytest.fixture
def customer(django_user_model):
    return django_user_model.objects.create_user(username="driver", password="DriverPass123")


@pytest.fixture
def parking_property(db):
    return Property.objects.create(
        name="Liberty Plaza Parking",
        address="Colombo 03",
        status=Property.Status.ACTIVATED,
        hourly_rate=Decimal("300.00"),
        daily_rate=Decimal("2000.00"),
        currency="LKR",
    )


@pytest.fixture
def slots(parking_property):
    return [
        ParkingSlot.objects.create(property=parking_property, slot_number="A1"),
        ParkingSlot.objects.create(property=parking_property, slot_number="A2"),
        ParkingSlot.objects.create(
            property=parking_property,
            slot_number="E1",
            slot_type=ParkingSlot.SlotType.EV,
        ),
        ParkingSlot.objects.create(
            property=parking_property,
            slot_number="W1",
            slot_type=ParkingSlot.SlotType.CAR_WASH,
        ),
    ]


@pytest.fixture
def at():
    return local_dt
