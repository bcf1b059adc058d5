"""
Database Notification Service
==============================

Stores notifications in the activity app so users can list them through the API.
"""

import logging
from typing import Optional

from django.db import DatabaseError

from .interface import NotificationException, NotificationServiceInterface

logger = logging.getLogger(__name__)


class DatabaseNotificationService(NotificationServiceInterface):
    def notify(
        self,
        user_id,
        notification_type: str,
        content: str,
        related_product_id: Optional[str] = None,
        sender_id=None,
    ) -> bool:
        from activity.models import Notification

        try:
            notification = Notification.objects.create(
                recipient_id=user_id,
                sender_id=sender_id,
                notification_type=notification_type,
                content=content,
                related_product_id=related_product_id,
            )
        except DatabaseError as e:
            logger.error(f"Failed to store {notification_type} notification for user {user_id}: {str(e)}")
            raise NotificationException(f"Notification delivery failed: {str(e)}") from e

        logger.info(f"Notification {notification.id} ({notification_type}) stored for user {user_id}")
        return True
