from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Notification
from .serializers import NotificationSerializer


@extend_schema(
    operation_id="notifications_list",
    summary="List the caller's notifications",
    parameters=[OpenApiParameter(name="unread", type=bool, description="Only unread notifications")],
    responses={200: NotificationSerializer(many=True)},
    tags=["Activity - Notifications"],
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def list_notifications(request):
    queryset = Notification.objects.filter(recipient=request.user)
    if request.query_params.get("unread", "").lower() == "true":
        queryset = queryset.filter(is_read=False)
    return Response(NotificationSerializer(queryset[:100], many=True).data, status=status.HTTP_200_OK)


@extend_schema(
    operation_id="notifications_mark_read",
    summary="Mark a notification as read",
    request=None,
    responses={200: NotificationSerializer},
    tags=["Activity - Notifications"],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def mark_notification_read(request, notification_id):
    notification = get_object_or_404(Notification, id=notification_id, recipient=request.user)
    notification.mark_read()
    return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)
