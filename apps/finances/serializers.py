"""Serializers for the finance domain (payment ledger)."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.domain.entities import PaymentMethod

from .models import PaymentEvent, PaymentSummary


class PaymentEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentEvent
        fields = [
            "id",
            "amount",
            "currency",
            "method",
            "status",
            "provider",
            "transaction_id",
            "recorded_by",
            "created_at",
        ]
        read_only_fields = fields


class PaymentSummarySerializer(serializers.ModelSerializer):
    """Running totals of a booking with dashboard projections."""

    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    collection_status = serializers.SerializerMethodField()
    payment_method = serializers.ReadOnlyField(source="payment_method_label")

    class Meta:
        model = PaymentSummary
        fields = [
            "total_amount",
            "online_paid",
            "cash_paid",
            "paid_amount",
            "balance_due",
            "currency",
            "collection_status",
            "payment_method",
            "updated_at",
        ]
        read_only_fields = fields

    def get_collection_status(self, obj: PaymentSummary) -> str:
        return obj.collection_status.value


class TopUpPaymentSerializer(serializers.Serializer):
    """
    Staff top-up input.

    ``paid_amount`` is the new cumulative amount paid across all methods,
    ``collect_amount`` the amount taken right now. Exactly one is required.
    """

    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    collect_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    method = serializers.CharField(default=PaymentMethod.CASH.value)
    channel = serializers.ChoiceField(choices=["COUNTER", "ADMIN"], default="COUNTER")
    note = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")

    def validate_method(self, value: str) -> str:
        try:
            return PaymentMethod.parse(value).value
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))

    def validate(self, attrs):  # type: ignore
        if ("paid_amount" in attrs) == ("collect_amount" in attrs):
            raise serializers.ValidationError("Provide either paid_amount or collect_amount.")
        return attrs
