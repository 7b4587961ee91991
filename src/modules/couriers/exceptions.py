"""Courier domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import NotFound


class CourierNotFound(NotFound):
    """No courier profile exists for the given id or user reference."""
