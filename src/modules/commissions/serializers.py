"""Commission DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.commissions.models import CommissionRateRecord


class CommissionRateUpdateSerializer(serializers.Serializer):
    rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100
    )
    reason = serializers.CharField(required=False, default="", allow_blank=True)


class CommissionRateRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionRateRecord
        fields = [
            "id",
            "entity_type",
            "entity_id",
            "old_rate",
            "new_rate",
            "changed_by",
            "reason",
            "created_at",
        ]
        read_only_fields = fields
