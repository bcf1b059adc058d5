from django.contrib import admin

from .models import Listing, Order, OrderLine


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ("product_id", "title", "seller", "price", "verification_state", "inventory", "is_sold")
    list_filter = ("verification_state", "is_sold", "created_at")
    search_fields = ("product_id", "title", "seller__email")
    readonly_fields = ("id", "orders_count", "created_at", "updated_at")

    actions = ["mark_verified", "mark_rejected"]

    def mark_verified(self, request, queryset):
        updated = queryset.update(verification_state=Listing.VERIFIED)
        self.message_user(request, f"{updated} listings marked as verified.")

    mark_verified.short_description = "Mark selected listings as verified"

    def mark_rejected(self, request, queryset):
        updated = queryset.update(verification_state=Listing.REJECTED)
        self.message_user(request, f"{updated} listings marked as rejected.")

    mark_rejected.short_description = "Mark selected listings as rejected"


class OrderLineInline(admin.TabularInline):
    model = OrderLine
    extra = 0
    fields = ("position", "seller", "product_id", "name", "price", "quantity", "status", "refund_status")
    # Lines only change through the order lifecycle services
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "buyer", "status", "payment_status", "total_amount", "created_at", "line_count")
    list_filter = ("status", "payment_status", "created_at")
    search_fields = ("id", "buyer__username", "buyer__email")
    readonly_fields = ("id", "status", "total_amount", "created_at", "updated_at", "line_count")

    inlines = [OrderLineInline]

    fieldsets = (
        ("Order Information", {"fields": ("id", "buyer", "status", "payment_status")}),
        ("Pricing", {"fields": ("delivery_fee", "total_amount")}),
        ("Delivery", {"fields": ("delivery_address",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at"), "classes": ("collapse",)}),
    )

    def line_count(self, obj):
        return obj.lines.count()

    line_count.short_description = "Lines"
