"""Liveness/readiness endpoint for the dispatch service.

Besides the database and the cache (which also backs throttling), the
check reports the notification outbox backlog: a growing number of
PENDING rows means the relay task is not running and couriers are not
receiving offers.
"""

import time
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger(__name__)


def _check_database() -> Dict[str, Any]:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    return {}


def _check_cache() -> Dict[str, Any]:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")
    return {}


def _check_outbox() -> Dict[str, Any]:
    pending = OutboxEvent.objects.filter(status=EventStatus.PENDING)
    oldest = pending.order_by("created_at").values_list("created_at", flat=True).first()
    lag_seconds = (timezone.now() - oldest).total_seconds() if oldest else 0.0
    if lag_seconds > settings.OUTBOX_MAX_LAG_SECONDS:
        raise RuntimeError(f"Outbox relay is {lag_seconds:.0f}s behind")
    return {
        "pending": pending.count(),
        "failed": OutboxEvent.objects.filter(status=EventStatus.FAILED).count(),
        "lag_seconds": round(lag_seconds, 2),
    }


HEALTH_CHECKS: Dict[str, Callable[[], Dict[str, Any]]] = {
    "database": _check_database,
    "cache": _check_cache,
    "outbox": _check_outbox,
}


def health_check(request: HttpRequest) -> JsonResponse:
    services: Dict[str, Dict[str, Any]] = {}
    overall_healthy = True

    for name, check in HEALTH_CHECKS.items():
        start = time.monotonic()
        try:
            details = check()
        except Exception as exc:
            services[name] = {"status": "down"}
            overall_healthy = False
            logger.error("health_check_failure", service=name, error=str(exc))
            continue
        services[name] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
            **details,
        }

    status_label = "healthy" if overall_healthy else "unhealthy"
    logger.info("health_check_completed", status=status_label)

    return JsonResponse(
        {
            "status": status_label,
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if overall_healthy else 503,
    )
