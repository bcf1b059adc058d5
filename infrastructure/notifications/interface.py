"""
Notification Service Interface
===============================

Abstract base class for in-app notifications addressed to a user.
"""

from abc import ABC, abstractmethod
from typing import Optional


class NotificationServiceInterface(ABC):
    """
    Abstract interface for in-app notification delivery.

    Concrete implementations:
        - DatabaseNotificationService: Persists activity.Notification rows
        - MockNotificationService: Records notifications in memory
    """

    @abstractmethod
    def notify(
        self,
        user_id,
        notification_type: str,
        content: str,
        related_product_id: Optional[str] = None,
        sender_id=None,
    ) -> bool:
        """
        Deliver a notification to one user.

        Returns:
            True if delivered, False otherwise

        Raises:
            NotificationException: If delivery fails critically
        """
        pass


class NotificationException(Exception):
    """Base exception for notification operations."""

    pass
