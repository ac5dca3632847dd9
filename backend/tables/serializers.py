from rest_framework import serializers

from .models import Table


class TableSerializer(serializers.ModelSerializer):
    restaurant_id = serializers.UUIDField(source="tenant_id", read_only=True)

    class Meta:
        model = Table
        fields = [
            "id",
            "restaurant_id",
            "table_number",
            "capacity",
            "floor_section",
            "current_status",
            "assigned_staff",
            "is_active",
            "updated_at",
        ]
        read_only_fields = fields
