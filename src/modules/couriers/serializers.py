"""Courier DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.couriers.models import Courier


class CourierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Courier
        fields = [
            "id",
            "user_id",
            "name",
            "phone",
            "is_online",
            "is_verified",
            "city",
            "zone",
            "vehicle_type",
            "vehicle_number",
            "current_latitude",
            "current_longitude",
            "last_location_update",
            "commission_rate",
            "total_earnings",
            "rejection_count",
            "penalty_amount",
        ]
        read_only_fields = fields


class CourierAvailabilitySerializer(serializers.Serializer):
    is_online = serializers.BooleanField()


class CourierLocationSerializer(serializers.Serializer):
    latitude = serializers.FloatField()
    longitude = serializers.FloatField()
