"""Commission URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.commissions.views import CommissionViewSet

router = DefaultRouter(trailing_slash=True)
router.register("commission", CommissionViewSet, basename="commission")

urlpatterns = router.urls
