"""
Notification Service Factory
=============================
"""

import logging
from typing import Dict, Literal, Optional, Type

from django.conf import settings

from .database_service import DatabaseNotificationService
from .interface import NotificationServiceInterface
from .mock_service import MockNotificationService

logger = logging.getLogger(__name__)

NotificationBackend = Literal["database", "mock"]


class NotificationFactory:
    """Reads settings.INFRASTRUCTURE["NOTIFICATION_BACKEND"] when no backend is given."""

    BACKENDS: Dict[str, Type[NotificationServiceInterface]] = {
        "database": DatabaseNotificationService,
        "mock": MockNotificationService,
    }

    @classmethod
    def create(cls, backend: Optional[NotificationBackend] = None) -> NotificationServiceInterface:
        backend_type = backend or getattr(settings, "INFRASTRUCTURE", {}).get("NOTIFICATION_BACKEND", "database")

        try:
            service_class = cls.BACKENDS[backend_type]
        except KeyError:
            raise ValueError(f"Invalid notification backend: {backend_type}. Must be one of {sorted(cls.BACKENDS)}")

        logger.info(f"Creating notification service backend: {backend_type}")
        return service_class()
