"""Translation of domain exceptions into DRF responses.

Views catch ``DomainError`` around service calls and delegate here, so
every endpoint answers with the same ``{"detail", "code"}`` body and the
same status code for a given error kind.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response

from modules.core.exceptions import (
    Conflict,
    DomainError,
    ExternalServiceError,
    Forbidden,
    InvalidCoordinates,
    InvalidTransition,
    InvalidVerificationCode,
    NoCourierAvailable,
    NotFound,
)

ERROR_STATUS_CODES: list[tuple[type[DomainError], int]] = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (InvalidTransition, status.HTTP_400_BAD_REQUEST),
    (Conflict, status.HTTP_409_CONFLICT),
    (InvalidVerificationCode, status.HTTP_400_BAD_REQUEST),
    (NoCourierAvailable, status.HTTP_409_CONFLICT),
    (InvalidCoordinates, status.HTTP_400_BAD_REQUEST),
    (ExternalServiceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: DomainError) -> int:
    for exc_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def domain_error_response(exc: DomainError) -> Response:
    """Build the standard error response for a domain exception."""
    return Response(
        {"detail": str(exc), "code": exc.code},
        status=status_code_for(exc),
    )
