from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    list_display = ("email", "username", "role", "pending_orders_count", "completed_orders_count", "balance")
    list_filter = ("role", "is_staff", "is_superuser", "email_notifications")
    search_fields = ("email", "username", "first_name", "last_name")
    ordering = ("email",)
    fieldsets = UserAdmin.fieldsets + (
        ("Marketplace", {"fields": ("role", "phone_number", "email_notifications", "payout_subaccount_code")}),
        (
            "Order statistics",
            {
                "fields": (
                    "pending_orders_count",
                    "completed_orders_count",
                    "failed_orders_count",
                    "order_count",
                    "sales_count",
                    "total_sales",
                    "balance",
                )
            },
        ),
    )
