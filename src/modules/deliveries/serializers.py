"""Delivery DRF serializers for API input/output.

The verification code is never part of a delivery response: the customer
receives it through their ``order_update`` notification only.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.constants import (
    LOCATION_HISTORY_DEFAULT_LIMIT,
    LOCATION_HISTORY_MAX_LIMIT,
    AcceptOutcome,
    DeliveryScope,
)
from modules.deliveries.models import Delivery, DeliveryLocation, DeliveryRequest
from modules.orders.constants import COURIER_STATES
from modules.orders.serializers import OrderSummarySerializer, ShopSummarySerializer

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class AssignDeliverySerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    partner_id = serializers.UUIDField()


class DeliveryStatusUpdateSerializer(serializers.Serializer):
    """Courier status update; DELIVERED needs ``verification_code``."""

    status = serializers.ChoiceField(choices=COURIER_STATES)
    verification_code = serializers.CharField(
        required=False, allow_blank=True, max_length=32, trim_whitespace=False
    )


class DeliveryConfirmSerializer(serializers.Serializer):
    # Compared verbatim; padding makes the code wrong.
    verification_code = serializers.CharField(max_length=32, trim_whitespace=False)


class DeliveryListQuerySerializer(serializers.Serializer):
    scope = serializers.ChoiceField(
        choices=DeliveryScope.choices, required=False, default=DeliveryScope.ACTIVE
    )


class LocationPingSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    speed = serializers.FloatField(required=False, allow_null=True, min_value=0)
    heading = serializers.FloatField(
        required=False, allow_null=True, min_value=0, max_value=360
    )
    accuracy = serializers.FloatField(required=False, allow_null=True, min_value=0)


class RouteUpdateSerializer(serializers.Serializer):
    route_polyline = serializers.CharField(required=False, allow_blank=True, default="")
    distance_km = serializers.FloatField(required=False, allow_null=True, min_value=0)
    eta_minutes = serializers.IntegerField(required=False, allow_null=True, min_value=0)

    def validate(self, attrs):
        if attrs.get("distance_km") is None and attrs.get("eta_minutes") is None:
            raise serializers.ValidationError("Provide distance_km or eta_minutes.")
        return attrs


class LocationHistoryQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(
        required=False,
        default=LOCATION_HISTORY_DEFAULT_LIMIT,
        min_value=1,
        max_value=LOCATION_HISTORY_MAX_LIMIT,
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class DeliveryRequestSerializer(serializers.ModelSerializer):
    """An offer as the courier sees it."""

    order = OrderSummarySerializer(read_only=True)
    pickup = ShopSummarySerializer(source="order.shop", read_only=True)

    class Meta:
        model = DeliveryRequest
        fields = [
            "id",
            "order",
            "pickup",
            "courier_id",
            "status",
            "expires_at",
            "is_exclusive",
            "attempt_number",
            "responded_at",
            "distance_km",
            "penalty_applied",
            "penalty_amount",
            "created_at",
        ]
        read_only_fields = fields


class DeliverySerializer(serializers.ModelSerializer):
    order = OrderSummarySerializer(read_only=True)
    pickup = ShopSummarySerializer(source="order.shop", read_only=True)

    class Meta:
        model = Delivery
        fields = [
            "id",
            "order",
            "pickup",
            "courier_id",
            "delivery_fee",
            "tip",
            "commission_amount",
            "partner_earnings",
            "pickup_time",
            "delivery_time",
            "settled_at",
            "is_tracking",
            "distance_km",
            "eta_minutes",
            "estimated_delivery_at",
            "created_at",
        ]
        read_only_fields = fields


class AcceptResultSerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(choices=AcceptOutcome.choices)
    request = DeliveryRequestSerializer()
    delivery = DeliverySerializer(allow_null=True)


class TrackingStateSerializer(serializers.ModelSerializer):
    """Current position and route of a delivery."""

    order_status = serializers.CharField(source="order.status", read_only=True)

    class Meta:
        model = Delivery
        fields = [
            "id",
            "order_id",
            "order_status",
            "is_tracking",
            "tracking_started_at",
            "current_latitude",
            "current_longitude",
            "last_location_update",
            "route_polyline",
            "distance_km",
            "eta_minutes",
            "estimated_delivery_at",
        ]
        read_only_fields = fields


class DeliveryLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeliveryLocation
        fields = [
            "id",
            "latitude",
            "longitude",
            "speed",
            "heading",
            "accuracy",
            "recorded_at",
        ]
        read_only_fields = fields
