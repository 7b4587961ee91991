"""Commission administration API (admin only)."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.commissions.dtos import CommissionRateUpdateDTO
from modules.commissions.factories import build_commission_service
from modules.commissions.filters import CommissionRecordFilter
from modules.commissions.repositories import CommissionRecordDjangoRepository
from modules.commissions.serializers import (
    CommissionRateRecordSerializer,
    CommissionRateUpdateSerializer,
)
from modules.core.errors import domain_error_response
from modules.core.exceptions import DomainError
from modules.core.pagination import StandardResultsSetPagination


class CommissionViewSet(GenericViewSet):
    """Rate updates for shops and couriers, plus the change history."""

    permission_classes = [IsAdminUser]
    serializer_class = CommissionRateRecordSerializer
    filterset_class = CommissionRecordFilter
    filter_backends = [DjangoFilterBackend]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_commission_service()

    def get_queryset(self):
        return CommissionRecordDjangoRepository().queryset()

    def _rate_update(self, request: Request) -> CommissionRateUpdateDTO:
        serializer = CommissionRateUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return CommissionRateUpdateDTO(**serializer.validated_data)

    @action(detail=False, methods=["patch"], url_path=r"vendor/(?P<shop_id>[^/.]+)")
    def vendor(self, request: Request, shop_id: str | None = None) -> Response:
        """PATCH /api/v1/commission/vendor/{shop_id}/"""
        dto = self._rate_update(request)
        try:
            record = self._service.update_vendor_rate(
                str(shop_id), dto.rate, changed_by=str(request.user.pk), reason=dto.reason
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(CommissionRateRecordSerializer(record).data)

    @action(detail=False, methods=["patch"], url_path=r"courier/(?P<partner_id>[^/.]+)")
    def courier(self, request: Request, partner_id: str | None = None) -> Response:
        """PATCH /api/v1/commission/courier/{partner_id}/"""
        dto = self._rate_update(request)
        try:
            record = self._service.update_courier_rate(
                str(partner_id),
                dto.rate,
                changed_by=str(request.user.pk),
                reason=dto.reason,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(CommissionRateRecordSerializer(record).data)

    @action(detail=False, methods=["get"])
    def history(self, request: Request) -> Response:
        """GET /api/v1/commission/history/?entity_type=&entity_id="""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = CommissionRateRecordSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)
