import time
import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_MAX_LENGTH = 128


def resolve_request_id(raw: str | None) -> str:
    """Return the caller's request id, or a fresh UUID4 when it is unusable.

    Ids are echoed into response headers and log lines, so anything empty,
    oversized or containing non-printable characters is replaced.
    """
    if raw and len(raw) <= REQUEST_ID_MAX_LENGTH and raw.isprintable():
        return raw.strip() or str(uuid.uuid4())
    return str(uuid.uuid4())


class CorrelationIdMiddleware:
    """Binds a correlation ID to every log line emitted while serving a request.

    The courier app, the vendor panel and the socket gateway forward the
    ID they used, so an offer can be followed from notification to
    acceptance across services.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = resolve_request_id(request.META.get("HTTP_X_REQUEST_ID"))
        correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        started = time.monotonic()
        logger.info(
            "request_started",
            method=request.method,
            path=request.get_full_path(),
        )

        response = self.get_response(request)

        logger.info(
            "request_finished",
            method=request.method,
            path=request.get_full_path(),
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )

        response[REQUEST_ID_HEADER] = cid
        return response
