from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("address", models.CharField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending approval"), ("ACTIVATED", "Activated"), ("DEACTIVATED", "Deactivated")],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                (
                    "hourly_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "daily_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Charged per slot instead of the hourly rate for stays of 24 hours or more; 0 disables it.",
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("currency", models.CharField(default="LKR", max_length=3)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="parking_properties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Property",
                "verbose_name_plural": "Properties",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="ParkingSlot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("slot_number", models.CharField(max_length=20)),
                (
                    "slot_type",
                    models.CharField(
                        choices=[("NORMAL", "Normal"), ("EV", "EV charging"), ("CAR_WASH", "Car wash bay")],
                        default="NORMAL",
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True, help_text="Cleared while the slot is under maintenance.")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="slots",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "verbose_name": "Parking slot",
                "verbose_name_plural": "Parking slots",
                "ordering": ["property_id", "slot_number"],
            },
        ),
        migrations.AddConstraint(
            model_name="parkingslot",
            constraint=models.UniqueConstraint(fields=("property", "slot_number"), name="parking_slot_unique_number"),
        ),
    ]
