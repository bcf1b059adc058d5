from decimal import Decimal
from unittest.mock import patch

import pytest
from django.urls import reverse
from rest_framework import status

from marketplace.models import Order, OrderLine
from marketplace.services import service_err
from marketplace.tests.factories import (
    AdminFactory,
    ListingFactory,
    SellerFactory,
    UserFactory,
    delivery_address,
    item_payload,
)


@pytest.mark.integration
@pytest.mark.django_db
class TestOrderViews:
    @pytest.fixture(autouse=True)
    def setup(self, services, api_client, django_capture_on_commit_callbacks):
        self.services = services
        self.client = api_client
        self.capture = django_capture_on_commit_callbacks
        self.buyer = UserFactory()
        self.seller1 = SellerFactory()
        self.seller2 = SellerFactory()
        self.lamp = ListingFactory(seller=self.seller1, price=Decimal("100.00"), inventory=5)
        self.mug = ListingFactory(seller=self.seller2, price=Decimal("50.00"), inventory=5)
        self.create_url = reverse("marketplace:order-list")

    def payload(self, **overrides):
        data = {
            "customer_id": str(self.buyer.id),
            "total_amount": "270.00",
            "delivery_fee": "20.00",
            "delivery_address": delivery_address(),
            "items": [item_payload(self.lamp, quantity=2), item_payload(self.mug, quantity=1)],
        }
        data.update(overrides)
        return data

    def place(self, **overrides):
        self.client.force_authenticate(user=self.buyer)
        with self.capture(execute=True):
            return self.client.post(self.create_url, self.payload(**overrides), format="json")

    def test_requires_authentication(self):
        response = self.client.post(self.create_url, self.payload(), format="json")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_order(self):
        response = self.place()

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["order"]["total_amount"] == "270.00"
        assert response.data["order"]["status"] == "pending"
        assert len(response.data["order"]["lines"]) == 2
        assert response.data["authorization_url"].startswith("https://checkout.mock/pay/")
        assert response.data["reference"]

    @pytest.mark.parametrize(
        "overrides,expected_status,code",
        [
            ({"total_amount": "290.00"}, status.HTTP_400_BAD_REQUEST, "validation_error"),
            ({"items": []}, status.HTTP_400_BAD_REQUEST, "validation_error"),
            ({"customer_id": "6f1c2b1e-0000-4000-8000-000000000000"}, status.HTTP_403_FORBIDDEN, "permission_denied"),
        ],
    )
    def test_create_order_errors(self, overrides, expected_status, code):
        response = self.place(**overrides)
        assert response.status_code == expected_status
        assert response.data["code"] == code
        assert response.data["detail"]

    def test_out_of_stock_is_409(self):
        self.lamp.inventory = 1
        self.lamp.save()
        response = self.place()
        assert response.status_code == status.HTTP_409_CONFLICT
        assert Order.objects.count() == 0

    def test_gateway_down_is_502(self):
        self.services.payment.fail_always("initialize_payment")
        response = self.place()
        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data["code"] == "external_service_error"

    @pytest.mark.parametrize(
        "code,expected_status",
        [
            ("consistency_error", status.HTTP_500_INTERNAL_SERVER_ERROR),
            ("transaction_timeout", status.HTTP_503_SERVICE_UNAVAILABLE),
            ("internal_error", status.HTTP_500_INTERNAL_SERVER_ERROR),
        ],
    )
    def test_server_side_codes(self, code, expected_status):
        with patch.object(self.services.orders, "get_order", return_value=service_err(code, "boom")):
            self.client.force_authenticate(user=self.buyer)
            response = self.client.get(
                reverse("marketplace:order-detail", kwargs={"pk": "6f1c2b1e-0000-4000-8000-000000000000"})
            )
        assert response.status_code == expected_status
        assert response.data == {"detail": "boom", "code": code}

    def test_retrieve_by_buyer_seller_and_admin(self):
        order_id = self.place().data["order"]["id"]
        url = reverse("marketplace:order-detail", kwargs={"pk": order_id})

        for user in (self.buyer, self.seller1, AdminFactory()):
            self.client.force_authenticate(user=user)
            response = self.client.get(url)
            assert response.status_code == status.HTTP_200_OK
            assert response.data["transaction"]["status"] == "pending"

        self.client.force_authenticate(user=UserFactory())
        assert self.client.get(url).status_code == status.HTTP_403_FORBIDDEN

    def test_retrieve_unknown_order(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.get(reverse("marketplace:order-detail", kwargs={"pk": "nope"}))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_line_status(self):
        order_id = self.place().data["order"]["id"]
        url = reverse("marketplace:order-update-line-status", kwargs={"pk": order_id, "line_index": 0})

        self.client.force_authenticate(user=self.buyer)
        assert self.client.patch(url, {"status": "processing"}, format="json").status_code == 403

        self.client.force_authenticate(user=self.seller1)
        with self.capture(execute=True):
            response = self.client.patch(url, {"status": "processing"}, format="json")
        assert response.status_code == status.HTTP_200_OK
        assert response.data["lines"][0]["status"] == "processing"

        response = self.client.patch(url, {"status": "processing"}, format="json")
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_cancel_line(self):
        order_id = self.place().data["order"]["id"]
        line = OrderLine.objects.get(order_id=order_id, position=1)
        url = reverse("marketplace:order-cancel-line", kwargs={"pk": order_id, "line_id": str(line.id)})

        with self.capture(execute=True):
            response = self.client.post(url)
        assert response.status_code == status.HTTP_200_OK
        assert response.data["total_amount"] == "220.00"
        assert response.data["lines"][1]["status"] == "cancelled"

        assert self.client.post(url).status_code == status.HTTP_409_CONFLICT

    def test_seller_sees_only_own_lines(self):
        self.place()
        url = reverse("marketplace:order-seller-orders", kwargs={"seller_id": str(self.seller2.id)})

        self.client.force_authenticate(user=self.seller2)
        response = self.client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert [line["product_id"] for line in response.data[0]["lines"]] == [self.mug.product_id]

    def test_seller_list_of_someone_else_is_forbidden(self):
        self.client.force_authenticate(user=self.seller1)
        url = reverse("marketplace:order-seller-orders", kwargs={"seller_id": str(self.seller2.id)})
        assert self.client.get(url).status_code == status.HTTP_403_FORBIDDEN

    def test_admin_lists_any_seller(self):
        self.place()
        self.client.force_authenticate(user=AdminFactory())
        url = reverse("marketplace:order-seller-orders", kwargs={"seller_id": str(self.seller1.id)})
        assert len(self.client.get(url).data) == 1

    def test_buyer_orders(self):
        self.place()
        url = reverse("marketplace:order-buyer-orders", kwargs={"buyer_id": str(self.buyer.id)})
        response = self.client.get(url)
        assert response.status_code == status.HTTP_200_OK
        assert len(response.data[0]["lines"]) == 2

    def test_list_with_malformed_id_is_400(self):
        self.client.force_authenticate(user=self.buyer)
        url = reverse("marketplace:order-buyer-orders", kwargs={"buyer_id": "abc"})
        assert self.client.get(url).status_code == status.HTTP_400_BAD_REQUEST

    def test_metrics_endpoint(self):
        self.place()
        response = self.client.get(reverse("marketplace:marketplace-metrics"))
        assert response.status_code == status.HTTP_200_OK
        assert b"orders_placed_total" in response.content
