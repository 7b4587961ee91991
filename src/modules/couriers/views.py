"""Courier self-service API (``/couriers/me/``)."""

from __future__ import annotations

from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.core.errors import domain_error_response
from modules.core.exceptions import DomainError
from modules.couriers.dtos import CourierAvailabilityDTO, CourierLocationDTO
from modules.couriers.repositories import CourierDjangoRepository
from modules.couriers.serializers import (
    CourierAvailabilitySerializer,
    CourierLocationSerializer,
    CourierSerializer,
)
from modules.couriers.services import CourierService


class CourierProfileViewSet(ViewSet):
    """Endpoints acting on the authenticated user's courier profile."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CourierService(courier_repository=CourierDjangoRepository())

    @action(detail=False, methods=["get"])
    def me(self, request: Request) -> Response:
        """GET /api/v1/couriers/me/"""
        try:
            courier = self._service.get_profile(request.user)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(CourierSerializer(courier).data)

    @action(detail=False, methods=["post"], url_path="me/online")
    def online(self, request: Request) -> Response:
        """POST /api/v1/couriers/me/online/"""
        serializer = CourierAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            courier = self._service.set_online(
                request.user, CourierAvailabilityDTO(**serializer.validated_data)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(CourierSerializer(courier).data)

    @action(detail=False, methods=["post"], url_path="me/location")
    def location(self, request: Request) -> Response:
        """POST /api/v1/couriers/me/location/"""
        serializer = CourierLocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            courier = self._service.update_location(
                request.user, CourierLocationDTO(**serializer.validated_data)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(CourierSerializer(courier).data)
