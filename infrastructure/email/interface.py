"""
Email Service Interface
========================

Outbound email channel for order notifications. Buyers and sellers only
receive email when their ``email_notifications`` preference is on; the
dispatcher checks that before calling ``send_email``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class EmailMessage:
    subject: str
    body: str
    to: List[str] = field(default_factory=list)
    from_email: Optional[str] = None
    html_body: Optional[str] = None


class EmailServiceInterface(ABC):
    """
    Implementations:
        - SMTPEmailService: whatever Django EMAIL_BACKEND is configured
        - MockEmailService: keeps messages in memory
    """

    @abstractmethod
    def send(self, message: EmailMessage) -> bool:
        """
        Hand one message to the backend.

        Returns False when the backend accepted nothing; raises
        EmailException when the backend errors.
        """

    def send_email(self, address: str, subject: str, body: str) -> bool:
        return self.send(EmailMessage(subject=subject, body=body, to=[address]))


class EmailException(Exception):
    pass
