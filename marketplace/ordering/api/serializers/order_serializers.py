from django.core.exceptions import ObjectDoesNotExist
from rest_framework import serializers

from marketplace.ordering.domain.models.order import Order, OrderLine
from marketplace.ordering.domain.state_machine import TRANSITION_TARGETS


class OrderLineSerializer(serializers.ModelSerializer):
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    seller_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = OrderLine
        fields = [
            "id",
            "position",
            "seller_id",
            "product_id",
            "name",
            "color",
            "size",
            "price",
            "quantity",
            "line_total",
            "status",
            "cancelled",
            "refund_status",
            "refunded_amount",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    buyer_id = serializers.UUIDField(read_only=True)
    lines = serializers.SerializerMethodField()
    transaction = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "buyer_id",
            "status",
            "payment_status",
            "delivery_fee",
            "total_amount",
            "delivery_address",
            "lines",
            "transaction",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_lines(self, obj):
        # Seller views prefetch only the seller's own lines into visible_lines
        lines = getattr(obj, "visible_lines", None)
        if lines is None:
            lines = obj.lines.all()
        return OrderLineSerializer(lines, many=True).data

    def get_transaction(self, obj):
        try:
            ledger = obj.transaction
        except ObjectDoesNotExist:
            return None
        return {
            "reference": ledger.reference,
            "status": ledger.status,
            "currency": ledger.currency,
            "paid_at": ledger.paid_at,
        }


class PlaceOrderItemSerializer(serializers.Serializer):
    seller_id = serializers.UUIDField()
    product_id = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=200)
    color = serializers.CharField(max_length=50)
    size = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    quantity = serializers.IntegerField()


class DeliveryAddressSerializer(serializers.Serializer):
    country = serializers.CharField()
    region = serializers.CharField()
    locality = serializers.CharField()
    phone = serializers.CharField()


class PlaceOrderRequestSerializer(serializers.Serializer):
    """Request body for placing an order. Used for documentation; the domain layer validates."""

    customer_id = serializers.UUIDField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    delivery_address = DeliveryAddressSerializer()
    items = PlaceOrderItemSerializer(many=True)


class PlaceOrderResponseSerializer(serializers.Serializer):
    order = OrderSerializer()
    authorization_url = serializers.URLField()
    reference = serializers.CharField()


class UpdateLineStatusRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=sorted(TRANSITION_TARGETS))
    seller_id = serializers.UUIDField(required=False)
    product_id = serializers.CharField(required=False)


class ErrorResponseSerializer(serializers.Serializer):
    detail = serializers.CharField(help_text="Human-readable error message")
    code = serializers.CharField(help_text="Error code identifier")
