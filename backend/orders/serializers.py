from django.db.models import Prefetch
from rest_framework import serializers

from .models import Order, OrderItem, OrderItemModifier


class OrderItemModifierSerializer(serializers.ModelSerializer):
    modifier_id = serializers.UUIDField(allow_null=True, read_only=True)

    class Meta:
        model = OrderItemModifier
        fields = ["modifier_id", "group_name", "modifier_name", "price_at_sale"]
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):
    menu_item_id = serializers.UUIDField(allow_null=True, read_only=True)
    variant_id = serializers.UUIDField(allow_null=True, read_only=True)
    modifiers = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "menu_item_id",
            "item_name",
            "unit_price",
            "quantity",
            "customization_amount",
            "total_price",
            "variant_id",
            "variant_name",
            "variant_price",
            "modifiers",
            "notes",
            "created_at",
        ]
        read_only_fields = fields

    def get_modifiers(self, obj):
        snapshots = getattr(obj, "_prefetched_objects_cache", {}).get("selected_modifiers_snapshot")
        if snapshots is None:
            snapshots = OrderItemModifier.all_objects.filter(order_item=obj)
        return OrderItemModifierSerializer(snapshots, many=True).data


class OrderSerializer(serializers.ModelSerializer):
    """
    Shape returned by the order services and broadcast with order events.
    """

    restaurant_id = serializers.UUIDField(source="tenant_id", read_only=True)
    table_id = serializers.UUIDField(allow_null=True, read_only=True)
    items = serializers.SerializerMethodField()
    placed_by = serializers.SerializerMethodField()
    bill = serializers.SerializerMethodField()
    balance_due = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "restaurant_id",
            "order_number",
            "table_id",
            "order_type",
            "status",
            "payment_status",
            "subtotal",
            "gst_amount",
            "service_tax_amount",
            "discount_amount",
            "total_amount",
            "paid_amount",
            "balance_due",
            "service_charge_waived",
            "is_closed",
            "cancel_reason",
            "guest_name",
            "guest_phone",
            "notes",
            "placed_by",
            "items",
            "bill",
            "created_at",
            "updated_at",
            "closed_at",
        ]
        read_only_fields = fields

    def get_items(self, obj):
        # Related managers are tenant-filtered; services run without a tenant context
        items = (
            OrderItem.all_objects.filter(order=obj)
            .order_by("created_at")
            .prefetch_related(
                Prefetch(
                    "selected_modifiers_snapshot",
                    queryset=OrderItemModifier.all_objects.all(),
                )
            )
        )
        return OrderItemSerializer(items, many=True).data

    def get_placed_by(self, obj):
        if obj.placed_by_id is None:
            return None
        user = obj.placed_by
        return {
            "id": user.pk,
            "name": user.get_full_name() or user.get_username(),
        }

    def get_bill(self, obj):
        from payments.models import Transaction
        from payments.serializers import TransactionSerializer

        bill = Transaction.all_objects.filter(order=obj).first()
        return TransactionSerializer(bill).data if bill else None
