"""
Activity Celery Tasks

Post-commit notification fan-out for the order lifecycle.
"""

import logging

from celery import shared_task
from django.db import DatabaseError

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def deliver_notifications(self, intents):
    """
    Deliver a batch of serialized NotificationIntents.

    Each intent is already retried by the dispatcher's best-effort policy;
    the task itself only retries when the database is unavailable.

    Returns:
        dict: delivered and failed counts
    """
    from infrastructure.container import container
    from marketplace.ordering.domain.services import NotificationIntent

    try:
        report = container.side_effect_dispatcher().dispatch(NotificationIntent.from_dict(i) for i in intents)
    except DatabaseError as e:
        logger.error(f"Notification delivery task failed: {e}")
        raise self.retry(exc=e, countdown=30 * (2**self.request.retries))

    logger.info(f"Notification task finished: {report.delivered} delivered, {report.failed} dropped")
    return {"delivered": report.delivered, "failed": report.failed}
