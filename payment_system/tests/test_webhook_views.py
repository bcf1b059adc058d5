import json

import pytest
from django.test import Client
from django.urls import reverse

from infrastructure.payments.mock_provider import MOCK_WEBHOOK_SIGNATURE
from marketplace.tests.factories import TransactionFactory
from payment_system.models import Transaction


@pytest.mark.integration
@pytest.mark.django_db
class TestPaymentWebhook:
    @pytest.fixture(autouse=True)
    def setup(self, services):
        self.services = services
        self.client = Client(enforce_csrf_checks=True)
        self.url = reverse("payment_system:webhook")

    def post(self, body, signature=MOCK_WEBHOOK_SIGNATURE):
        headers = {"HTTP_STRIPE_SIGNATURE": signature} if signature else {}
        return self.client.post(self.url, data=json.dumps(body), content_type="application/json", **headers)

    def test_payment_confirmation(self):
        ledger = TransactionFactory()

        response = self.post({"id": "evt_1", "type": "checkout.session.completed", "data": {"id": ledger.reference}})

        assert response.status_code == 200
        assert response.content == b"Processed."
        assert Transaction.objects.get(pk=ledger.pk).is_settled

    def test_missing_signature(self):
        response = self.post({"type": "checkout.session.completed"}, signature=None)
        assert response.status_code == 400

    def test_bad_signature(self):
        ledger = TransactionFactory()
        response = self.post(
            {"type": "checkout.session.completed", "data": {"id": ledger.reference}}, signature="forged"
        )
        assert response.status_code == 400
        assert not Transaction.objects.get(pk=ledger.pk).is_settled

    def test_unknown_reference_is_acknowledged(self):
        response = self.post({"type": "checkout.session.completed", "data": {"id": "cs_unknown"}})
        assert response.status_code == 200
        assert response.content == b"Unknown reference."

    def test_ignored_event(self):
        response = self.post({"type": "payout.failed", "data": {"id": "po_1"}})
        assert response.status_code == 200
        assert response.content == b"Ignored."

    def test_full_charge_refund_reverses_payment(self):
        ledger = TransactionFactory(status="completed")

        response = self.post(
            {
                "id": "evt_2",
                "type": "charge.refunded",
                "data": {"id": "ch_1", "refunded": True, "transfer_group": str(ledger.order_id)},
            }
        )

        assert response.content == b"Processed."
        assert Transaction.objects.get(pk=ledger.pk).is_reversed
