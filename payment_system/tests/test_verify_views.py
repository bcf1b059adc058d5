import pytest
from django.urls import reverse

from marketplace.tests.factories import OrderFactory, TransactionFactory, UserFactory
from payment_system.models import Transaction


@pytest.mark.integration
@pytest.mark.django_db
class TestVerifyPaymentView:
    @pytest.fixture(autouse=True)
    def setup(self, services, api_client):
        self.services = services
        self.client = api_client
        self.buyer = UserFactory()
        self.ledger = TransactionFactory(order=OrderFactory(buyer=self.buyer))
        self.url = reverse("payment_system:verify", kwargs={"reference": self.ledger.reference})

    def test_buyer_verifies_paid_session(self):
        self.client.force_authenticate(user=self.buyer)

        response = self.client.get(self.url)

        assert response.status_code == 200
        assert response.data["status"] == "completed"
        assert response.data["reference"] == self.ledger.reference
        assert response.data["is_reversed"] is False
        assert Transaction.objects.get(pk=self.ledger.pk).is_settled

    def test_unpaid_session(self):
        self.services.payment.set_payment_state(self.ledger.reference, "unpaid")
        self.client.force_authenticate(user=self.buyer)

        response = self.client.get(self.url)

        assert response.status_code == 400
        assert response.data["code"] == "validation_error"

    def test_gateway_down(self):
        self.services.payment.fail_always("verify_payment")
        self.client.force_authenticate(user=self.buyer)
        assert self.client.get(self.url).status_code == 502

    def test_other_user_is_forbidden(self):
        self.client.force_authenticate(user=UserFactory())
        assert self.client.get(self.url).status_code == 403

    def test_unknown_reference(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.get(reverse("payment_system:verify", kwargs={"reference": "cs_missing"}))
        assert response.status_code == 404

    def test_requires_authentication(self):
        assert self.client.get(self.url).status_code == 401
