from rest_framework import serializers

from payment_system.models import Transaction


class PaymentStatusSerializer(serializers.ModelSerializer):
    order_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Transaction
        fields = ["reference", "order_id", "status", "is_reversed", "total_amount", "currency", "paid_at"]
        read_only_fields = fields
