import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models

User = get_user_model()


class Listing(models.Model):
    PENDING = "Pending"
    VERIFIED = "Verified"
    REJECTED = "Rejected"

    VERIFICATION_CHOICES = [
        (PENDING, "Pending"),
        (VERIFIED, "Verified"),
        (REJECTED, "Rejected"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product_id = models.CharField(max_length=64, unique=True)
    seller = models.ForeignKey(User, on_delete=models.CASCADE, related_name="listings")

    title = models.CharField(max_length=200)
    price = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))], default=Decimal("0.01")
    )

    # Moderation and availability
    verification_state = models.CharField(max_length=10, choices=VERIFICATION_CHOICES, default="Pending")
    inventory = models.PositiveIntegerField(default=1)
    is_sold = models.BooleanField(default=False)

    # Analytics
    orders_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["seller", "verification_state"], name="marketplace_seller__3b7c1e_idx"),
            models.Index(fields=["verification_state", "is_sold"], name="marketplace_verific_8d2f4a_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.product_id})"

    @property
    def is_available(self) -> bool:
        return self.verification_state == "Verified" and not self.is_sold and self.inventory > 0
