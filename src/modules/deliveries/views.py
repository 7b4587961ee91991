"""Delivery API views.

Three resources:
- ``deliveries/``: manual assignment (admin) and courier status updates.
- ``delivery-requests/``: the calling courier's offers and responses.
- ``tracking/``: live position, route and GPS history of a delivery.

Domain exceptions become ``{"detail", "code"}`` responses through
``domain_error_response``.  A database failure during assignment or
settlement rolls the transaction back and is reported as retryable.
"""

from __future__ import annotations

import structlog
from django.db import DatabaseError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import ViewSet

from modules.core.errors import domain_error_response
from modules.core.exceptions import DomainError, ExternalServiceError
from modules.couriers.repositories import CourierDjangoRepository
from modules.couriers.services import CourierService
from modules.deliveries.constants import AcceptOutcome
from modules.deliveries.dtos import (
    AssignDeliveryDTO,
    DeliveryStatusUpdateDTO,
    LocationPingDTO,
    RouteUpdateDTO,
)
from modules.deliveries.factories import (
    build_delivery_service,
    build_dispatch_matcher,
    build_ledger,
    build_tracking_service,
)
from modules.deliveries.serializers import (
    AcceptResultSerializer,
    AssignDeliverySerializer,
    DeliveryConfirmSerializer,
    DeliveryListQuerySerializer,
    DeliveryLocationSerializer,
    DeliveryRequestSerializer,
    DeliverySerializer,
    DeliveryStatusUpdateSerializer,
    LocationHistoryQuerySerializer,
    LocationPingSerializer,
    RouteUpdateSerializer,
    TrackingStateSerializer,
)
from modules.orders.constants import ActorRole
from modules.orders.serializers import OrderSerializer
from modules.orders.state_machine import Actor

logger = structlog.get_logger(__name__)


def _storage_failure(exc: DatabaseError, operation: str) -> Response:
    logger.error("delivery.storage_failure", operation=operation, error=str(exc))
    return domain_error_response(
        ExternalServiceError("Temporary storage failure, please retry.")
    )


class DeliveryViewSet(ViewSet):
    """Assignment and courier-driven lifecycle, keyed by order id."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_delivery_service()

    def get_permissions(self):
        if self.action == "assign":
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action in {"confirm", "update_status"}:
            throttle_scope = "delivery_confirmation"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def list(self, request: Request) -> Response:
        """GET /api/v1/deliveries/?scope=active|history"""
        query = DeliveryListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        try:
            deliveries = self._service.list_for_courier(
                request.user, query.validated_data["scope"]
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(DeliverySerializer(deliveries, many=True).data)

    @action(detail=False, methods=["post"])
    def assign(self, request: Request) -> Response:
        """POST /api/v1/deliveries/assign/"""
        serializer = AssignDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = AssignDeliveryDTO(**serializer.validated_data)

        actor = Actor(role=ActorRole.ADMIN, user_id=str(request.user.pk))
        try:
            delivery = build_dispatch_matcher().assign(
                str(dto.order_id), str(dto.partner_id), actor
            )
        except DomainError as exc:
            return domain_error_response(exc)
        except DatabaseError as exc:
            return _storage_failure(exc, "assign")
        return Response(
            {
                "delivery": DeliverySerializer(delivery).data,
                "order": OrderSerializer(delivery.order).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/deliveries/{order_id}/status/"""
        serializer = DeliveryStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = DeliveryStatusUpdateDTO(**serializer.validated_data)

        try:
            delivery = self._service.update_status(
                str(pk),
                dto.status,
                request.user,
                verification_code=dto.verification_code,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        except DatabaseError as exc:
            return _storage_failure(exc, "update_status")
        return Response(DeliverySerializer(delivery).data)

    @action(detail=True, methods=["post"])
    def confirm(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/deliveries/{order_id}/confirm/"""
        serializer = DeliveryConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            delivery = self._service.confirm(
                str(pk), serializer.validated_data["verification_code"], request.user
            )
        except DomainError as exc:
            return domain_error_response(exc)
        except DatabaseError as exc:
            return _storage_failure(exc, "confirm")
        return Response(DeliverySerializer(delivery).data)


class DeliveryRequestViewSet(ViewSet):
    """The calling courier's offers."""

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._couriers = CourierService(courier_repository=CourierDjangoRepository())
        self._ledger = build_ledger()

    def list(self, request: Request) -> Response:
        """GET /api/v1/delivery-requests/"""
        try:
            courier = self._couriers.get_profile(request.user)
        except DomainError as exc:
            return domain_error_response(exc)
        offers = self._ledger.live_for_courier(str(courier.id))
        return Response(DeliveryRequestSerializer(offers, many=True).data)

    @action(detail=True, methods=["post"])
    def accept(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/delivery-requests/{id}/accept/

        200 when the courier won the order; 409 with ``outcome`` set to
        ``already_assigned`` or ``expired`` otherwise.
        """
        try:
            courier = self._couriers.get_profile(request.user)
            result = build_dispatch_matcher().accept(str(pk), courier)
        except DomainError as exc:
            return domain_error_response(exc)
        except DatabaseError as exc:
            return _storage_failure(exc, "accept")

        http_status = (
            status.HTTP_200_OK
            if result.outcome == AcceptOutcome.ACCEPTED
            else status.HTTP_409_CONFLICT
        )
        return Response(AcceptResultSerializer(result).data, status=http_status)

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/delivery-requests/{id}/reject/"""
        try:
            courier = self._couriers.get_profile(request.user)
            resolved = build_dispatch_matcher().reject(str(pk), courier)
        except DomainError as exc:
            return domain_error_response(exc)
        except DatabaseError as exc:
            return _storage_failure(exc, "reject")
        return Response(DeliveryRequestSerializer(resolved).data)


class TrackingViewSet(ViewSet):
    """Live tracking, keyed by delivery id."""

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_tracking_service()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/tracking/{delivery_id}/"""
        try:
            delivery = self._service.current_location(str(pk), request.user)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(TrackingStateSerializer(delivery).data)

    @action(detail=True, methods=["post"])
    def start(self, request: Request, pk: str | None = None) -> Response:
        try:
            delivery = self._service.start(str(pk), request.user)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(TrackingStateSerializer(delivery).data)

    @action(detail=True, methods=["post"])
    def stop(self, request: Request, pk: str | None = None) -> Response:
        try:
            delivery = self._service.stop(str(pk), request.user)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(TrackingStateSerializer(delivery).data)

    @action(detail=True, methods=["post"])
    def location(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/tracking/{delivery_id}/location/"""
        serializer = LocationPingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            sample = self._service.record_location(
                str(pk), request.user, LocationPingDTO(**serializer.validated_data)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            DeliveryLocationSerializer(sample).data, status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=["post"])
    def route(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/tracking/{delivery_id}/route/"""
        serializer = RouteUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            delivery = self._service.update_route(
                str(pk), request.user, RouteUpdateDTO(**serializer.validated_data)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(TrackingStateSerializer(delivery).data)

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/tracking/{delivery_id}/history/?limit=N"""
        query = LocationHistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        try:
            samples = self._service.history(
                str(pk), request.user, limit=query.validated_data["limit"]
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(DeliveryLocationSerializer(samples, many=True).data)
