"""Delivery URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.deliveries.views import (
    DeliveryRequestViewSet,
    DeliveryViewSet,
    TrackingViewSet,
)

router = DefaultRouter(trailing_slash=True)
router.register("deliveries", DeliveryViewSet, basename="delivery")
router.register("delivery-requests", DeliveryRequestViewSet, basename="delivery-request")
router.register("tracking", TrackingViewSet, basename="tracking")

urlpatterns = router.urls
