from django.urls import path

from . import views

app_name = "activity"

urlpatterns = [
    path("notifications/", views.list_notifications, name="notification-list"),
    path("notifications/<uuid:notification_id>/read/", views.mark_notification_read, name="notification-read"),
]
