from unittest.mock import patch

import pytest
from django.urls import reverse

from activity.models import Notification
from activity.tasks import deliver_notifications
from infrastructure.container import container
from infrastructure.notifications import DatabaseNotificationService
from marketplace.ordering.domain.services import NotificationIntent
from marketplace.tests.factories import UserFactory


def intent(user, **overrides):
    data = NotificationIntent(
        user_id=str(user.id),
        notification_type="order",
        content="Your order has been placed.",
        email=user.email,
        email_subject="Your Order Confirmation",
    ).to_dict()
    data.update(overrides)
    return data


@pytest.mark.django_db
class TestDeliverNotificationsTask:
    def test_delivers_notification_and_email(self, services):
        user = UserFactory()

        result = deliver_notifications.delay([intent(user)]).get()

        assert result == {"delivered": 2, "failed": 0}
        assert services.notifications.for_user(user.id)[0].content == "Your order has been placed."
        assert services.email.messages_to(user.email)[0].subject == "Your Order Confirmation"

    def test_failures_are_counted_not_raised(self, services):
        user = UserFactory()
        services.notifications.fail_for(user.id)

        result = deliver_notifications.delay([intent(user, email=None)]).get()

        assert result == {"delivered": 0, "failed": 1}
        assert services.notifications.attempts == 3

    def test_dispatcher_hands_off_to_task_when_async(self, services, settings):
        settings.ORDERS = {**settings.ORDERS, "ASYNC_NOTIFICATIONS": True}
        user = UserFactory()
        dispatcher = container.side_effect_dispatcher()

        with patch("activity.tasks.deliver_notifications") as task:
            dispatcher.hand_off([NotificationIntent.from_dict(intent(user))])

        task.delay.assert_called_once_with([intent(user)])
        assert services.notifications.sent == []


@pytest.mark.django_db
class TestNotificationViews:
    def test_list_and_mark_read(self, api_client):
        user = UserFactory()
        DatabaseNotificationService().notify(user.id, "order_status", "Your lamp has shipped.")
        api_client.force_authenticate(user=user)

        response = api_client.get(reverse("activity:notification-list"))
        assert response.status_code == 200
        assert response.data[0]["content"] == "Your lamp has shipped."

        notification = Notification.objects.get(recipient=user)
        response = api_client.post(reverse("activity:notification-read", kwargs={"notification_id": notification.id}))
        assert response.status_code == 200
        notification.refresh_from_db()
        assert notification.is_read

    def test_other_users_notifications_are_hidden(self, api_client):
        owner = UserFactory()
        DatabaseNotificationService().notify(owner.id, "order", "Private")
        api_client.force_authenticate(user=UserFactory())
        assert api_client.get(reverse("activity:notification-list")).data == []
