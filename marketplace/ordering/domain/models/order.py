import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models

User = get_user_model()

LINE_STATUS_FLOW = ["pending", "processing", "shipped", "out_for_delivery", "delivered"]


class Order(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),  # Derived - never set directly
        ("shipped", "Shipped"),
        ("delivered", "Delivered"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("paid", "Paid"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    buyer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="orders")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default="pending")

    # Pricing
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Delivery Information: country, region, locality, phone
    delivery_address = models.JSONField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"

    def __str__(self):
        return f"Order {str(self.id)[:8]} by {self.buyer.username}"

    def derive_status(self, lines=None) -> str:
        """Order status from line statuses: delivered, shipped or pending."""
        statuses = [line.status for line in (lines if lines is not None else self.lines.all())]
        if statuses and all(s in ("delivered", "cancelled") for s in statuses):
            return "delivered"
        if statuses and all(s in ("shipped", "out_for_delivery", "delivered", "cancelled") for s in statuses):
            return "shipped"
        return "pending"

    def compute_total(self, lines=None) -> Decimal:
        lines = lines if lines is not None else self.lines.all()
        return self.delivery_fee + sum((line.line_total for line in lines if not line.cancelled), Decimal("0.00"))

    def refresh_derived_fields(self, lines=None, save: bool = True) -> None:
        """Recompute status and total after a line mutation."""
        lines = list(lines if lines is not None else self.lines.all())
        self.status = self.derive_status(lines)
        self.total_amount = self.compute_total(lines)
        if save:
            self.save(update_fields=["status", "total_amount", "updated_at"])


class OrderLine(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("processing", "Processing"),
        ("shipped", "Shipped"),
        ("out_for_delivery", "Out for Delivery"),
        ("delivered", "Delivered"),
        ("cancelled", "Cancelled"),
    ]

    REFUND_STATUS_CHOICES = [
        ("none", "None"),
        ("pending", "Pending"),
        ("completed", "Completed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="lines")
    position = models.PositiveIntegerField()
    seller = models.ForeignKey(User, on_delete=models.CASCADE, related_name="sold_lines")

    # Product snapshot at time of purchase
    product_id = models.CharField(max_length=64)
    name = models.CharField(max_length=200)
    color = models.CharField(max_length=50)
    size = models.CharField(max_length=50, blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    commission_rate = models.DecimalField(max_digits=5, decimal_places=4)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    cancelled = models.BooleanField(default=False)
    refund_status = models.CharField(max_length=20, choices=REFUND_STATUS_CHOICES, default="none")
    refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Set once the line's pending-order counters have been released
    pending_released = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["position"]
        app_label = "marketplace"
        constraints = [
            models.UniqueConstraint(fields=["order", "position"], name="unique_order_line_position"),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.name} in order {str(self.order_id)[:8]}"

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def seller_net(self) -> Decimal:
        return (self.line_total * (Decimal("1") - self.commission_rate)).quantize(Decimal("0.01"))
