"""
Mock Email Service
==================

In-memory email channel. Tests assert on what the order lifecycle sent
and can make chosen addresses bounce.
"""

import logging
from typing import List, Optional, Set

from .interface import EmailMessage, EmailServiceInterface

logger = logging.getLogger(__name__)


class MockEmailService(EmailServiceInterface):
    """Addresses registered through ``fail_for`` are rejected with False."""

    def __init__(self):
        self.sent_messages: List[EmailMessage] = []
        self.failing_addresses: Set[str] = set()

    def fail_for(self, address: str):
        self.failing_addresses.add(address)

    def send(self, message: EmailMessage) -> bool:
        if self.failing_addresses.intersection(message.to):
            logger.info(f"[MOCK EMAIL] Rejected message to {message.to}")
            return False

        logger.info(f"[MOCK EMAIL] To: {message.to}, Subject: {message.subject}")
        self.sent_messages.append(message)
        return True

    def clear_sent_messages(self):
        """Clear the list of sent messages (useful between tests)."""
        self.sent_messages.clear()
        self.failing_addresses.clear()

    def get_sent_count(self) -> int:
        return len(self.sent_messages)

    def get_last_message(self) -> Optional[EmailMessage]:
        return self.sent_messages[-1] if self.sent_messages else None

    def messages_to(self, address: str) -> List[EmailMessage]:
        return [message for message in self.sent_messages if address in message.to]
