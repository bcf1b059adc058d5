import logging
import uuid

from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()
logger = logging.getLogger(__name__)


class Notification(models.Model):
    """
    In-app notification delivered to a user by the order lifecycle.
    """

    TYPE_CHOICES = [
        ("order", "Order Placed"),
        ("order_status", "Order Status Update"),
        ("order_cancellation", "Order Cancellation"),
        ("payout", "Payout"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name="notifications")
    sender = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="sent_notifications"
    )
    notification_type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    content = models.TextField()
    related_product_id = models.CharField(max_length=64, blank=True, null=True)
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["recipient", "is_read", "created_at"], name="activity_no_recipie_4f1e7b_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.notification_type} for {self.recipient_id}: {self.content[:40]}"

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.save(update_fields=["is_read"])
