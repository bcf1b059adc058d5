"""
Email channel adapters, selected by EmailFactory from settings.INFRASTRUCTURE.
"""

from .factory import EmailFactory
from .interface import EmailException, EmailMessage, EmailServiceInterface
from .mock_service import MockEmailService
from .smtp_service import SMTPEmailService

__all__ = [
    "EmailFactory",
    "EmailException",
    "EmailMessage",
    "EmailServiceInterface",
    "MockEmailService",
    "SMTPEmailService",
]
