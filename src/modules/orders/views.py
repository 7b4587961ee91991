"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into HTTP responses by
``domain_error_response``; the view never swallows generic exceptions.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.errors import domain_error_response
from modules.core.exceptions import DomainError
from modules.deliveries.factories import build_dispatch_matcher
from modules.deliveries.serializers import DeliveryRequestSerializer
from modules.orders.dtos import OrderStatusUpdateDTO
from modules.orders.factories import build_order_service
from modules.orders.models import Order
from modules.orders.serializers import (
    OrderCancelSerializer,
    OrderSerializer,
    OrderStatusUpdateSerializer,
)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_permissions(self):
        if self.action == "redispatch":
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "retrieve":
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order_for(str(pk), request.user)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status Update (vendor path)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/status/

        Moves the order along the vendor/admin edges (ACCEPTED, READY).
        Courier edges are driven through ``/deliveries/{order_id}/status/``.
        """
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = OrderStatusUpdateDTO(**serializer.validated_data)

        try:
            order = self._service.update_status(
                order_id=str(pk),
                new_status=dto.status,
                user=request.user,
                notes=dto.notes,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/"""
        serializer = OrderCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.cancel_order(
                order_id=str(pk),
                user=request.user,
                notes=serializer.validated_data["notes"],
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Re-dispatch (admin)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="dispatch")
    def redispatch(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/dispatch/

        Runs matching again for a READY order that has no delivery, e.g.
        after every earlier offer went unanswered.
        """
        try:
            offers = build_dispatch_matcher().dispatch(str(pk))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            {"offers": DeliveryRequestSerializer(offers, many=True).data},
            status=status.HTTP_202_ACCEPTED,
        )
