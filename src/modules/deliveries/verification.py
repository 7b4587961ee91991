"""Delivery verification code: generated at assignment, checked at handover."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

import structlog

from modules.core.exceptions import InvalidVerificationCode

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery

logger = structlog.get_logger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


class VerificationGate:
    """Issues and checks the 6-digit code the customer reads to the courier."""

    @staticmethod
    def generate() -> str:
        return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))

    @staticmethod
    def validate(delivery: Delivery, code: str | None) -> None:
        """Exact string match only; a mismatch changes nothing.

        Raises:
            InvalidVerificationCode: the code is missing or does not match.
        """
        supplied = "" if code is None else str(code)
        if not supplied or not secrets.compare_digest(
            supplied.encode(), delivery.verification_code.encode()
        ):
            logger.warning("delivery.verification_failed", delivery_id=str(delivery.id))
            raise InvalidVerificationCode("Invalid verification code.")
