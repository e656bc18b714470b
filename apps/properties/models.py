"""Parking property and slot catalog.

The reservation core only reads these models: rates and activation of a
property, and the type and maintenance flag of each slot. Slot type
synonyms used by older clients are folded into one closed vocabulary here.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Property(models.Model):
    """Parking property (lot) with its hourly and daily rates."""

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending approval")
        ACTIVATED = "ACTIVATED", _("Activated")
        DEACTIVATED = "DEACTIVATED", _("Deactivated")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="parking_properties",
    )
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    daily_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Charged per slot instead of the hourly rate for stays of 24 hours or more; 0 disables it."),
    )
    currency = models.CharField(max_length=3, default="LKR")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Property")
        verbose_name_plural = _("Properties")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    @property
    def is_activated(self) -> bool:
        return self.status == self.Status.ACTIVATED


class ParkingSlot(models.Model):
    """A single reservable parking bay, EV charger or wash bay."""

    class SlotType(models.TextChoices):
        NORMAL = "NORMAL", _("Normal")
        EV = "EV", _("EV charging")
        CAR_WASH = "CAR_WASH", _("Car wash bay")

        @classmethod
        def parse(cls, raw) -> "ParkingSlot.SlotType":
            """Map any known spelling of a slot type onto the canonical value."""
            key = str(raw or "").strip().upper().replace("-", "_").replace(" ", "_")
            try:
                return SLOT_TYPE_ALIASES[key]
            except KeyError:
                raise ValueError(f"Unknown slot type: {raw!r}")

    property = models.ForeignKey(
        Property,
        on_delete=models.PROTECT,
        related_name="slots",
    )
    slot_number = models.CharField(max_length=20)
    slot_type = models.CharField(max_length=20, choices=SlotType.choices, default=SlotType.NORMAL)
    is_active = models.BooleanField(
        default=True,
        help_text=_("Cleared while the slot is under maintenance."),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Parking slot")
        verbose_name_plural = _("Parking slots")
        ordering = ["property_id", "slot_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["property", "slot_number"],
                name="parking_slot_unique_number",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.slot_number} ({self.property_id})"

    def zone(self) -> str:
        """Letter prefix of the slot number (A12 -> A)."""
        prefix = self.slot_number.upper().rstrip("0123456789")
        return prefix or "A"


SLOT_TYPE_ALIASES = {
    "NORMAL": ParkingSlot.SlotType.NORMAL,
    "STANDARD": ParkingSlot.SlotType.NORMAL,
    "EV": ParkingSlot.SlotType.EV,
    "EV_SLOT": ParkingSlot.SlotType.EV,
    "EV_CHARGING": ParkingSlot.SlotType.EV,
    "CAR_WASH": ParkingSlot.SlotType.CAR_WASH,
    "CAR_WASHING": ParkingSlot.SlotType.CAR_WASH,
    "CARWASH": ParkingSlot.SlotType.CAR_WASH,
}
