"""Commission domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import DomainError


class InvalidCommissionRate(DomainError):
    """Rates are percentages between 0 and 100."""

    code = "invalid_commission_rate"
