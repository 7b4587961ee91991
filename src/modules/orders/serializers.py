"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderStatusHistory, Shop

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OrderStatusUpdateSerializer(serializers.Serializer):
    """Validates the vendor/admin status update payload."""

    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class OrderCancelSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "actor_role",
            "actor_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class ShopSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Shop
        fields = ["id", "name", "address", "city", "latitude", "longitude"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with the shop and status history."""

    shop = ShopSummarySerializer(read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "shop",
            "status",
            "delivery_fee",
            "tip",
            "commission_amount",
            "courier_earnings",
            "payment_status",
            "notes",
            "created_at",
            "updated_at",
            "status_history",
        ]
        read_only_fields = fields


class OrderSummarySerializer(serializers.ModelSerializer):
    """Lightweight serializer used inside delivery payloads."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "delivery_fee",
            "tip",
            "payment_status",
        ]
        read_only_fields = fields
