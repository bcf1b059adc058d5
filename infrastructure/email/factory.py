"""
Email Service Factory
======================

Builds the email channel configured in settings.INFRASTRUCTURE["EMAIL_BACKEND_TYPE"].
"""

import logging
from typing import Dict, Literal, Optional, Type

from django.conf import settings

from .interface import EmailServiceInterface
from .mock_service import MockEmailService
from .smtp_service import SMTPEmailService

logger = logging.getLogger(__name__)

EmailBackend = Literal["smtp", "mock"]


class EmailFactory:
    """
    Factory for the email channel used by order notifications.

    Usage:
        email = EmailFactory.create()          # from settings
        email = EmailFactory.create("mock")    # explicit
    """

    BACKENDS: Dict[str, Type[EmailServiceInterface]] = {
        "smtp": SMTPEmailService,
        "mock": MockEmailService,
    }

    @classmethod
    def create(cls, backend: Optional[EmailBackend] = None) -> EmailServiceInterface:
        """
        Raises:
            ValueError: If backend type is invalid
        """
        # Test runs default to the in-memory channel when nothing is configured.
        fallback = "mock" if getattr(settings, "TESTING", False) else "smtp"
        backend_type = backend or getattr(settings, "INFRASTRUCTURE", {}).get("EMAIL_BACKEND_TYPE", fallback)

        try:
            service_class = cls.BACKENDS[backend_type]
        except KeyError:
            raise ValueError(f"Invalid email backend: {backend_type}. Must be one of {sorted(cls.BACKENDS)}")

        logger.info(f"Creating email service backend: {backend_type}")
        return service_class()
