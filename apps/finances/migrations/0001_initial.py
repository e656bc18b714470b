from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("currency", models.CharField(default="LKR", max_length=3)),
                ("method", models.CharField(choices=[("CARD", "Card"), ("CASH", "Cash")], max_length=10)),
                (
                    "status",
                    models.CharField(
                        choices=[("PAID", "Paid"), ("PENDING", "Pending"), ("FAILED", "Failed")],
                        default="PAID",
                        max_length=10,
                    ),
                ),
                (
                    "provider",
                    models.CharField(
                        choices=[
                            ("MOCK_CARD_GATEWAY", "Card gateway (mock)"),
                            ("COUNTER_CARD_TERMINAL", "Counter card terminal"),
                            ("COUNTER_CASH", "Counter cash"),
                            ("MANUAL_ADMIN_UPDATE", "Manual admin update"),
                        ],
                        max_length=30,
                    ),
                ),
                ("transaction_id", models.CharField(blank=True, max_length=100)),
                ("recorded_by", models.CharField(max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_events",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment event",
                "verbose_name_plural": "Payment events",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="PaymentSummary",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("online_paid", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("cash_paid", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("balance_due", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="LKR", max_length=3)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "booking",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_summary",
                        to="bookings.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment summary",
                "verbose_name_plural": "Payment summaries",
            },
        ),
        migrations.AddConstraint(
            model_name="paymentevent",
            constraint=models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_event_positive_amount",
            ),
        ),
        migrations.AddConstraint(
            model_name="paymentsummary",
            constraint=models.CheckConstraint(
                condition=models.Q(balance_due__gte=0),
                name="payment_summary_balance_non_negative",
            ),
        ),
    ]
