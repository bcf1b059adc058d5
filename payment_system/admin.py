from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from .models import Transaction, TransactionItem


class TransactionItemInline(admin.TabularInline):
    model = TransactionItem
    extra = 0
    fields = (
        "line",
        "seller",
        "item_amount",
        "seller_share",
        "platform_commission",
        "payout_status",
        "refund_status",
    )
    readonly_fields = fields
    can_delete = False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ["reference_short", "order_link", "status_badge", "total_amount", "currency", "paid_at"]
    list_filter = ["status", "is_reversed", "currency", "created_at"]
    search_fields = ["reference", "order__id", "order__buyer__email"]
    readonly_fields = ["id", "created_at", "updated_at", "paid_at"]
    inlines = [TransactionItemInline]

    def reference_short(self, obj):
        return obj.reference[:15] + "..." if len(obj.reference) > 15 else obj.reference

    reference_short.short_description = "Reference"

    def order_link(self, obj):
        url = reverse("admin:marketplace_order_change", args=[obj.order_id])
        return format_html('<a href="{}">{}</a>', url, str(obj.order_id)[:8])

    order_link.short_description = "Order"

    def status_badge(self, obj):
        colors = {"pending": "orange", "completed": "green", "failed": "red", "reversed": "gray"}
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.status, "black"),
            obj.get_status_display(),
        )

    status_badge.short_description = "Status"


@admin.register(TransactionItem)
class TransactionItemAdmin(admin.ModelAdmin):
    list_display = ["line", "seller", "seller_share", "payout_status", "refund_status"]
    list_filter = ["payout_status", "refund_status"]
    search_fields = ["payout_reference", "refund_reference", "seller__email"]
    readonly_fields = ["id", "created_at", "updated_at"]
