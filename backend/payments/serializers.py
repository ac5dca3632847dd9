from rest_framework import serializers

from .models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    restaurant_id = serializers.UUIDField(source="tenant_id", read_only=True)
    order_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "restaurant_id",
            "order_id",
            "bill_number",
            "subtotal",
            "gst_amount",
            "service_tax_amount",
            "discount_amount",
            "grand_total",
            "gst_rate_percent",
            "service_rate_percent",
            "payment_method",
            "payment_reference",
            "paid_at",
        ]
        read_only_fields = fields
