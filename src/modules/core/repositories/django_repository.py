"""Django ORM implementation of the platform settings repository."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog

from modules.core.models import PlatformSetting
from modules.core.repositories.interfaces import ISettingsRepository

logger = structlog.get_logger(__name__)


class PlatformSettingDjangoRepository(ISettingsRepository):
    """Concrete settings repository backed by the ``platform_settings`` table."""

    def get(self, key: str) -> Optional[str]:
        return (
            PlatformSetting.objects.filter(key=key)
            .values_list("value", flat=True)
            .first()
        )

    def get_decimal(self, key: str, default: Decimal) -> Decimal:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return Decimal(raw.strip())
        except (InvalidOperation, AttributeError):
            logger.warning("settings.invalid_decimal", key=key, value=raw)
            return default

    def set(self, key: str, value: str) -> PlatformSetting:
        setting, _ = PlatformSetting.objects.update_or_create(
            key=key, defaults={"value": value}
        )
        logger.info("settings.updated", key=key)
        return setting
