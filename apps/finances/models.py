"""Payment ledger models for EasyPark bookings."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.entities import CollectionStatus, PaymentEventStatus, PaymentMethod


class PaymentEvent(models.Model):
    """Single payment appended to a booking's ledger. Never edited."""

    class Provider(models.TextChoices):
        MOCK_CARD_GATEWAY = "MOCK_CARD_GATEWAY", _("Card gateway (mock)")
        COUNTER_CARD_TERMINAL = "COUNTER_CARD_TERMINAL", _("Counter card terminal")
        COUNTER_CASH = "COUNTER_CASH", _("Counter cash")
        MANUAL_ADMIN_UPDATE = "MANUAL_ADMIN_UPDATE", _("Manual admin update")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payment_events",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(max_length=3, default="LKR")
    method = models.CharField(max_length=10, choices=PaymentMethod.choices())
    status = models.CharField(
        max_length=10,
        choices=PaymentEventStatus.choices(),
        default=PaymentEventStatus.PAID.value,
    )
    provider = models.CharField(max_length=30, choices=Provider.choices)
    transaction_id = models.CharField(max_length=100, blank=True)
    recorded_by = models.CharField(max_length=150)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment event")
        verbose_name_plural = _("Payment events")
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_event_positive_amount",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.method} {self.amount} for booking {self.booking_id} ({self.status})"


class PaymentSummary(models.Model):
    """
    Running totals of a booking's ledger.

    Only the reconciliation service writes these rows. The stored values
    always satisfy ``online_paid + cash_paid + balance_due == total_amount``.
    """

    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payment_summary",
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    online_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    cash_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    balance_due = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="LKR")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment summary")
        verbose_name_plural = _("Payment summaries")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(balance_due__gte=0),
                name="payment_summary_balance_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_id}: {self.paid_amount}/{self.total_amount} {self.currency}"

    @property
    def paid_amount(self) -> Decimal:
        return self.online_paid + self.cash_paid

    @property
    def collection_status(self) -> CollectionStatus:
        return CollectionStatus.for_amounts(
            self.total_amount,
            self.paid_amount,
            settings.RESERVATIONS["PAID_EPSILON"],
        )

    @property
    def payment_method_label(self) -> str:
        """CARD, CASH, CARD,CASH or N/A depending on where the money came from."""
        methods = []
        if self.online_paid > 0:
            methods.append(PaymentMethod.CARD.value)
        if self.cash_paid > 0:
            methods.append(PaymentMethod.CASH.value)
        return ",".join(methods) or "N/A"
