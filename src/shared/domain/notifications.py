"""Notification port consumed by the dispatch core.

The core produces events addressed to a user id; transport, retries and
client delivery belong to the implementation behind this interface.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol


class INotificationPublisher(Protocol):
    """Message-passing interface towards customer/vendor/courier channels."""

    def publish(self, user_id: str, event_name: str, payload: Dict[str, Any]) -> None: ...
