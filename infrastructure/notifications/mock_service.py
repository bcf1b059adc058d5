"""
Mock Notification Service
==========================

Keeps notifications in memory for tests.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from .interface import NotificationServiceInterface

logger = logging.getLogger(__name__)


@dataclass
class SentNotification:
    user_id: object
    notification_type: str
    content: str
    related_product_id: Optional[str] = None
    sender_id: object = None


class MockNotificationService(NotificationServiceInterface):
    """
    Mock notification service.

    Users registered through ``fail_for`` never receive notifications; the
    call returns False so retry and failure paths can be exercised.
    """

    def __init__(self):
        self.sent: List[SentNotification] = []
        self.failing_users: Set[str] = set()
        self.attempts = 0

    def fail_for(self, user_id):
        self.failing_users.add(str(user_id))

    def notify(
        self,
        user_id,
        notification_type: str,
        content: str,
        related_product_id: Optional[str] = None,
        sender_id=None,
    ) -> bool:
        self.attempts += 1
        if str(user_id) in self.failing_users:
            logger.info(f"[MOCK NOTIFY] Rejected {notification_type} for {user_id}")
            return False

        self.sent.append(SentNotification(user_id, notification_type, content, related_product_id, sender_id))
        logger.info(f"[MOCK NOTIFY] {notification_type} for {user_id}: {content[:60]}")
        return True

    def for_user(self, user_id) -> List[SentNotification]:
        return [n for n in self.sent if str(n.user_id) == str(user_id)]

    def reset(self):
        self.sent.clear()
        self.failing_users.clear()
        self.attempts = 0
