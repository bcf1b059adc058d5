"""
Notification Service Abstraction Layer
========================================

Provides a unified interface for in-app notifications.
"""

from .database_service import DatabaseNotificationService
from .factory import NotificationFactory
from .interface import NotificationException, NotificationServiceInterface
from .mock_service import MockNotificationService, SentNotification

__all__ = [
    "NotificationServiceInterface",
    "NotificationException",
    "DatabaseNotificationService",
    "MockNotificationService",
    "SentNotification",
    "NotificationFactory",
]
