"""
Email Infrastructure Tests
===========================

Unit tests for email service abstraction layer.
"""

from unittest.mock import MagicMock, patch

from django.core import mail
from django.test import TestCase, override_settings

from infrastructure.email import (
    EmailException,
    EmailFactory,
    EmailMessage,
    EmailServiceInterface,
    MockEmailService,
    SMTPEmailService,
)


class EmailInterfaceTest(TestCase):
    def test_interface_is_abstract(self):
        """EmailServiceInterface should not be instantiable."""
        with self.assertRaises(TypeError):
            EmailServiceInterface()


class MockEmailServiceTest(TestCase):
    def setUp(self):
        self.email_service = MockEmailService()

    def test_send_email(self):
        message = EmailMessage(subject="Order Shipped", body="On its way", to=["buyer@example.com"])

        self.assertTrue(self.email_service.send(message))
        self.assertEqual(self.email_service.get_sent_count(), 1)
        self.assertEqual(self.email_service.get_last_message(), message)

    def test_send_email_helper(self):
        self.email_service.send_email("seller@example.com", "New Order", "You have a new order")

        sent = self.email_service.messages_to("seller@example.com")
        self.assertEqual(len(sent), 1)
        self.assertEqual(sent[0].subject, "New Order")

    def test_failing_address_is_rejected(self):
        self.email_service.fail_for("bounce@example.com")

        self.assertFalse(self.email_service.send_email("bounce@example.com", "Hi", "Body"))
        self.assertEqual(self.email_service.get_sent_count(), 0)

    def test_clear_sent_messages(self):
        self.email_service.send_email("buyer@example.com", "Hi", "Body")
        self.email_service.fail_for("bounce@example.com")

        self.email_service.clear_sent_messages()

        self.assertIsNone(self.email_service.get_last_message())
        self.assertTrue(self.email_service.send_email("bounce@example.com", "Hi", "Body"))


@override_settings(
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
    DEFAULT_FROM_EMAIL="noreply@test.com",
)
class SMTPEmailServiceTest(TestCase):
    def setUp(self):
        self.email_service = SMTPEmailService()

    def test_send_email_success(self):
        message = EmailMessage(subject="Your Order Confirmation", body="Thanks", to=["buyer@example.com"])

        self.assertTrue(self.email_service.send(message))
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].from_email, "noreply@test.com")
        self.assertEqual(mail.outbox[0].to, ["buyer@example.com"])

    def test_html_alternative_is_attached(self):
        message = EmailMessage(subject="Receipt", body="Plain", to=["buyer@example.com"], html_body="<h1>Receipt</h1>")

        self.email_service.send(message)

        self.assertEqual(mail.outbox[0].alternatives[0][0], "<h1>Receipt</h1>")

    @patch("infrastructure.email.smtp_service.EmailMultiAlternatives")
    def test_send_email_failure(self, mock_email_class):
        mock_msg = MagicMock()
        mock_msg.send.side_effect = OSError("SMTP error")
        mock_email_class.return_value = mock_msg

        with self.assertRaises(EmailException):
            self.email_service.send(EmailMessage(subject="Test", body="Body", to=["buyer@example.com"]))

    @patch("infrastructure.email.smtp_service.EmailMultiAlternatives")
    def test_nothing_sent_returns_false(self, mock_email_class):
        mock_msg = MagicMock()
        mock_msg.send.return_value = 0
        mock_email_class.return_value = mock_msg

        self.assertFalse(self.email_service.send_email("buyer@example.com", "Test", "Body"))

    def test_default_from_email(self):
        self.assertEqual(self.email_service.default_from, "noreply@test.com")


class EmailFactoryTest(TestCase):
    @override_settings(INFRASTRUCTURE={"EMAIL_BACKEND_TYPE": "mock"})
    def test_create_mock_service(self):
        self.assertIsInstance(EmailFactory.create(), MockEmailService)

    @override_settings(INFRASTRUCTURE={"EMAIL_BACKEND_TYPE": "smtp"})
    def test_create_smtp_service(self):
        self.assertIsInstance(EmailFactory.create(), SMTPEmailService)

    def test_create_with_explicit_backend(self):
        self.assertIsInstance(EmailFactory.create("mock"), MockEmailService)

    def test_create_invalid_backend(self):
        with self.assertRaises(ValueError):
            EmailFactory.create("invalid")

    @override_settings(TESTING=True, INFRASTRUCTURE={})
    def test_default_to_mock_in_testing(self):
        self.assertIsInstance(EmailFactory.create(), MockEmailService)
