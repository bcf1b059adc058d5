from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    recipient_id = serializers.UUIDField(read_only=True)
    sender_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "recipient_id",
            "sender_id",
            "notification_type",
            "content",
            "related_product_id",
            "is_read",
            "created_at",
        ]
        read_only_fields = fields
