import uuid
from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    ROLE_CHOICES = [
        ("user", "User"),
        ("seller", "Seller"),
        ("admin", "Admin"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=30, blank=True)
    last_name = models.CharField(max_length=30, blank=True)
    phone_number = models.CharField(max_length=20, blank=True)

    # Role system - simple field
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="user")

    # Preferences
    email_notifications = models.BooleanField(default=True)

    # Payout sub-account at the payment gateway (Stripe connected account id)
    payout_subaccount_code = models.CharField(max_length=255, blank=True, null=True, unique=True)

    # Order statistics
    pending_orders_count = models.IntegerField(default=0)
    completed_orders_count = models.PositiveIntegerField(default=0)
    failed_orders_count = models.PositiveIntegerField(default=0)
    order_count = models.PositiveIntegerField(default=0)

    # Seller analytics and financials
    sales_count = models.PositiveIntegerField(default=0)
    total_sales = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        app_label = "authentication"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def is_seller(self):
        """Check if user is a seller"""
        return self.role == "seller" or self.is_admin()

    def is_admin(self):
        """Check if user is an admin"""
        return self.role == "admin" or self.is_superuser

    def has_payout_subaccount(self) -> bool:
        return bool(self.payout_subaccount_code)

    def __str__(self):
        return self.email
