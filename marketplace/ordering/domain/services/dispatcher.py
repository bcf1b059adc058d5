"""
Side-effect dispatch for the order lifecycle.

Two call modes share one RetryPolicy but differ in what happens after the
last attempt:

* ``call_critical`` - gateway calls that are part of the committed outcome.
  Exhaustion raises ExternalServiceError and aborts the enclosing UnitOfWork.
* ``call_best_effort`` - notifications and emails after commit. Exhaustion is
  logged and reported as ``False``; nothing is raised.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from django.conf import settings

from infrastructure.email import EmailServiceInterface
from infrastructure.notifications import NotificationServiceInterface
from infrastructure.payments import PaymentException
from marketplace.infra.observability.metrics import (
    gateway_call_failures_total,
    gateway_retries_total,
    notification_failures_total,
)
from marketplace.ordering.domain.exceptions import ExternalServiceError
from utils.logging_utils import mask_value
from utils.retry_utils import RetryPolicy
from utils.transaction_utils import UnitOfWork

logger = logging.getLogger(__name__)


class DeliveryRejected(Exception):
    """A notification or email channel answered ``False``."""


def call_critical(policy: RetryPolicy, operation: str, func: Callable[..., Any], *args, **kwargs) -> Any:
    """
    Call a gateway operation, retrying PaymentException.

    Raises:
        ExternalServiceError: The gateway still failed after the last attempt
    """

    def count_retry(attempt, error):
        gateway_retries_total.labels(operation=operation).inc()

    try:
        return policy.with_retry_on((PaymentException,)).call(
            func, *args, label=operation, on_retry=count_retry, **kwargs
        )
    except PaymentException as e:
        gateway_call_failures_total.labels(operation=operation).inc()
        logger.error(f"{operation} failed after {policy.attempts} attempts: {e}")
        raise ExternalServiceError(f"Payment gateway {operation} failed: {e}", operation=operation) from e


def call_best_effort(policy: RetryPolicy, label: str, func: Callable[..., bool], *args, **kwargs) -> bool:
    """Call a delivery function that reports failure by returning False. Never raises."""

    def attempt():
        if func(*args, **kwargs) is False:
            raise DeliveryRejected(f"{label} was rejected")
        return True

    try:
        return policy.call(attempt, label=label)
    except Exception as e:
        logger.error(f"{label} dropped after {policy.attempts} attempts: {e}")
        return False


@dataclass
class NotificationIntent:
    """
    One recipient's notification, plus an optional email copy.

    Plain strings only, so intents can be handed to a Celery task.
    """

    user_id: str
    notification_type: str
    content: str
    related_product_id: Optional[str] = None
    sender_id: Optional[str] = None
    email: Optional[str] = None
    email_subject: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationIntent":
        return cls(**data)


@dataclass
class DispatchReport:
    delivered: int = 0
    failed: int = 0


class SideEffectDispatcher:
    """
    Fans out notification intents after the UnitOfWork commits.

    With ``ORDERS["ASYNC_NOTIFICATIONS"]`` the intents are enqueued on the
    notification Celery queue; otherwise they are delivered in-process.
    """

    def __init__(
        self,
        notifications: NotificationServiceInterface,
        email: EmailServiceInterface,
        policy: Optional[RetryPolicy] = None,
    ):
        self.notifications = notifications
        self.email = email
        self.policy = policy or RetryPolicy.from_settings()

    def schedule(self, uow: UnitOfWork, intents: Iterable[NotificationIntent]) -> None:
        """Register delivery to run only if ``uow`` commits."""
        intents = list(intents)
        if intents:
            uow.on_commit(lambda: self.hand_off(intents))

    def hand_off(self, intents: List[NotificationIntent]) -> None:
        if getattr(settings, "ORDERS", {}).get("ASYNC_NOTIFICATIONS", False):
            from activity.tasks import deliver_notifications

            try:
                deliver_notifications.delay([intent.to_dict() for intent in intents])
                return
            except Exception as e:
                logger.error(f"Could not enqueue {len(intents)} notifications, delivering inline: {e}")
        self.dispatch(intents)

    def dispatch(self, intents: Iterable[NotificationIntent]) -> DispatchReport:
        report = DispatchReport()
        for intent in intents:
            delivered = call_best_effort(
                self.policy,
                f"notify {intent.notification_type} to {intent.user_id}",
                self.notifications.notify,
                intent.user_id,
                intent.notification_type,
                intent.content,
                related_product_id=intent.related_product_id,
                sender_id=intent.sender_id,
            )
            self._count(report, delivered, "notification")

            if intent.email:
                delivered = call_best_effort(
                    self.policy,
                    f"email to {mask_value(intent.email)}",
                    self.email.send_email,
                    intent.email,
                    intent.email_subject or intent.notification_type,
                    intent.content,
                )
                self._count(report, delivered, "email")

        if report.failed:
            logger.warning(f"Side effects: {report.delivered} delivered, {report.failed} dropped")
        return report

    @staticmethod
    def _count(report: DispatchReport, delivered: bool, channel: str) -> None:
        if delivered:
            report.delivered += 1
        else:
            report.failed += 1
            notification_failures_total.labels(channel=channel).inc()
