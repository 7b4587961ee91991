import django_filters

from modules.commissions.models import CommissionEntityType, CommissionRateRecord


class CommissionRecordFilter(django_filters.FilterSet):
    entity_type = django_filters.ChoiceFilter(choices=CommissionEntityType.choices)
    entity_id = django_filters.CharFilter(field_name="entity_id")
    changed_by = django_filters.CharFilter(field_name="changed_by")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = CommissionRateRecord
        fields = ["entity_type", "entity_id", "changed_by", "start_date", "end_date"]
