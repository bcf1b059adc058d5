"""
Notification Infrastructure Tests
==================================
"""

from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase, override_settings

from activity.models import Notification
from infrastructure.notifications import (
    DatabaseNotificationService,
    MockNotificationService,
    NotificationException,
    NotificationFactory,
    NotificationServiceInterface,
)
from marketplace.tests.factories import SellerFactory, UserFactory


class DatabaseNotificationServiceTest(TestCase):
    def setUp(self):
        self.service = DatabaseNotificationService()

    def test_notify_stores_row(self):
        buyer = UserFactory()
        seller = SellerFactory()

        self.assertTrue(
            self.service.notify(buyer.id, "order_status", "Your lamp has shipped.", "PROD-00001", sender_id=seller.id)
        )

        notification = Notification.objects.get(recipient=buyer)
        self.assertEqual(notification.sender_id, seller.id)
        self.assertEqual(notification.related_product_id, "PROD-00001")
        self.assertFalse(notification.is_read)

    def test_database_error_is_wrapped(self):
        buyer = UserFactory()
        with patch.object(Notification.objects, "create", side_effect=DatabaseError("locked")):
            with self.assertRaises(NotificationException):
                self.service.notify(buyer.id, "order", "Placed")


class MockNotificationServiceTest(TestCase):
    def setUp(self):
        self.service = MockNotificationService()

    def test_records_and_filters_by_user(self):
        self.service.notify("u1", "order", "Placed")
        self.service.notify("u2", "order", "Placed")

        self.assertEqual(len(self.service.for_user("u1")), 1)
        self.assertEqual(self.service.attempts, 2)

    def test_failing_user(self):
        self.service.fail_for("u1")

        self.assertFalse(self.service.notify("u1", "order", "Placed"))
        self.assertEqual(self.service.sent, [])

        self.service.reset()
        self.assertTrue(self.service.notify("u1", "order", "Placed"))


class NotificationFactoryTest(TestCase):
    def test_interface_is_abstract(self):
        with self.assertRaises(TypeError):
            NotificationServiceInterface()

    @override_settings(INFRASTRUCTURE={"NOTIFICATION_BACKEND": "database"})
    def test_create_from_settings(self):
        self.assertIsInstance(NotificationFactory.create(), DatabaseNotificationService)

    def test_create_mock(self):
        self.assertIsInstance(NotificationFactory.create("mock"), MockNotificationService)

    def test_create_invalid_backend(self):
        with self.assertRaises(ValueError):
            NotificationFactory.create("sms")
