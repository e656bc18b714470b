import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [("PENDING", "Pending"), ("PAID", "Paid"), ("CANCELLED", "Cancelled")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("properties", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_number", models.CharField(editable=False, max_length=12, unique=True)),
                (
                    "customer_name",
                    models.CharField(blank=True, help_text="Walk-in customer name recorded at the counter.", max_length=255),
                ),
                ("vehicle_number", models.CharField(blank=True, max_length=20)),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField()),
                ("status", models.CharField(choices=STATUS_CHOICES, default="PENDING", max_length=20)),
                (
                    "category",
                    models.CharField(
                        choices=[("NORMAL", "Normal"), ("EV", "Ev"), ("CAR_WASH", "Car Wash")],
                        default="NORMAL",
                        max_length=20,
                    ),
                ),
                (
                    "channel",
                    models.CharField(
                        choices=[("ONLINE", "Online"), ("COUNTER", "Counter"), ("ADMIN", "Admin")],
                        default="ONLINE",
                        max_length=20,
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        blank=True,
                        help_text="Client supplied key; a replayed create returns the original booking.",
                        max_length=64,
                        null=True,
                        unique=True,
                    ),
                ),
                ("created_by", models.CharField(max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="parking_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "property",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-start_time", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="BookingSlot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField()),
                ("blocks_slot", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="slot_assignments",
                        to="bookings.booking",
                    ),
                ),
                (
                    "slot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assignments",
                        to="properties.parkingslot",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booked slot",
                "verbose_name_plural": "Booked slots",
                "ordering": ["booking_id", "slot_id"],
            },
        ),
        migrations.CreateModel(
            name="BookingStatusHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("old_status", models.CharField(blank=True, choices=STATUS_CHOICES, max_length=20, null=True)),
                ("new_status", models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ("changed_by", models.CharField(max_length=150)),
                ("note", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="status_history",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Status change",
                "verbose_name_plural": "Status history",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="BookingActionLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor", models.CharField(max_length=150)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("BOOKING_CREATED", "Booking created"),
                            ("PAYMENT_COLLECTED", "Payment collected"),
                            ("STATUS_CHANGED", "Status changed"),
                        ],
                        max_length=30,
                    ),
                ),
                ("note", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="action_logs",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Staff action",
                "verbose_name_plural": "Staff actions",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.AddConstraint(
            model_name="booking",
            constraint=models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_window",
            ),
        ),
        migrations.AddIndex(
            model_name="booking",
            index=models.Index(fields=["property", "start_time", "end_time"], name="booking_property_window_idx"),
        ),
        migrations.AddIndex(
            model_name="booking",
            index=models.Index(fields=["status"], name="booking_status_idx"),
        ),
        migrations.AddConstraint(
            model_name="bookingslot",
            constraint=models.UniqueConstraint(fields=("booking", "slot"), name="booking_slot_unique"),
        ),
        migrations.AddIndex(
            model_name="bookingslot",
            index=models.Index(fields=["slot", "start_time", "end_time"], name="booking_slot_window_idx"),
        ),
    ]
