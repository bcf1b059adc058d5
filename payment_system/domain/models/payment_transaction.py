import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models


User = get_user_model()


class Transaction(models.Model):
    """
    Payment ledger for one order.

    Opened at placement together with the gateway payment intent and consulted,
    never re-created, by delivery payouts and cancellation refunds.
    """

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("reversed", "Reversed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.OneToOneField("marketplace.Order", on_delete=models.CASCADE, related_name="transaction")

    # Gateway payment intent
    reference = models.CharField(max_length=255, unique=True)
    authorization_url = models.URLField(max_length=2000, blank=True)

    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))]
    )
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="KES")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    is_reversed = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="payment_tra_status_5e1a9c_idx"),
        ]

    def __str__(self):
        return f"Transaction {self.reference} ({self.status})"

    @property
    def is_settled(self) -> bool:
        return self.status == "completed"


class TransactionItem(models.Model):
    """Per-line payout and refund bookkeeping."""

    PAYOUT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("processing", "Processing"),  # Accepted by the gateway, in flight
        ("completed", "Completed"),
    ]

    REFUND_STATUS_CHOICES = [
        ("none", "None"),
        ("pending", "Pending"),
        ("completed", "Completed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name="items")
    line = models.OneToOneField("marketplace.OrderLine", on_delete=models.CASCADE, related_name="transaction_item")
    seller = models.ForeignKey(User, on_delete=models.CASCADE, related_name="transaction_items")

    item_amount = models.DecimalField(max_digits=12, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=4)
    seller_share = models.DecimalField(max_digits=12, decimal_places=2)
    platform_commission = models.DecimalField(max_digits=12, decimal_places=2)

    payout_status = models.CharField(max_length=20, choices=PAYOUT_STATUS_CHOICES, default="pending")
    payout_reference = models.CharField(max_length=255, blank=True)

    refund_status = models.CharField(max_length=20, choices=REFUND_STATUS_CHOICES, default="none")
    refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refund_reference = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_transaction_items"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["seller", "payout_status"], name="payment_tra_seller__9c4b2d_idx"),
        ]

    def __str__(self):
        return f"Item {self.line_id} payout={self.payout_status} refund={self.refund_status}"
