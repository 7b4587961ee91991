"""Courier URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.couriers.views import CourierProfileViewSet

router = DefaultRouter(trailing_slash=True)
router.register("couriers", CourierProfileViewSet, basename="courier")

urlpatterns = router.urls
