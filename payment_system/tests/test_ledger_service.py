from decimal import Decimal

import pytest

from infrastructure.payments import MockPaymentProvider, PaymentInitialization, WebhookEvent
from marketplace.models import Listing, OrderLine
from marketplace.ordering.domain.exceptions import (
    AuthorizationError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from marketplace.tests.factories import (
    AdminFactory,
    ListingFactory,
    OrderFactory,
    OrderLineFactory,
    TransactionFactory,
    TransactionItemFactory,
    UserFactory,
)
from payment_system.domain.services.ledger_service import PaymentLedgerService, ledger_totals
from payment_system.models import Transaction
from utils.retry_utils import RetryPolicy
from utils.transaction_utils import TransactionError, UnitOfWork


@pytest.fixture
def payment():
    return MockPaymentProvider()


@pytest.fixture
def ledger_service(payment):
    return PaymentLedgerService(payment=payment, policy=RetryPolicy(attempts=2, backoff=0))


@pytest.fixture
def ledger():
    order = OrderFactory(delivery_fee=Decimal("20.00"), total_amount=Decimal("270.00"))
    ledger = TransactionFactory(order=order)
    lamp = OrderLineFactory(order=order, position=0, price=Decimal("100.00"), quantity=2)
    mug = OrderLineFactory(order=order, position=1, price=Decimal("50.00"), quantity=1)
    TransactionItemFactory(transaction=ledger, line=lamp, payout_reference="tr_lamp")
    TransactionItemFactory(transaction=ledger, line=mug, refund_reference="re_mug", refund_status="pending")
    return ledger


def event(event_type, **data):
    return WebhookEvent(event_id="evt_1", event_type=event_type, data=data)


@pytest.mark.django_db
class TestOpenLedger:
    def test_commission_split_per_line(self, ledger_service):
        order = OrderFactory(delivery_fee=Decimal("20.00"), total_amount=Decimal("270.00"))
        lines = [
            OrderLineFactory(order=order, position=0, price=Decimal("100.00"), quantity=2),
            OrderLineFactory(order=order, position=1, price=Decimal("33.33"), quantity=1),
        ]
        init = PaymentInitialization(authorization_url="https://checkout.mock/pay/ref_x", reference="ref_x")

        with UnitOfWork("place_order") as uow:
            created = ledger_service.open_ledger(uow, order, lines, init)

        assert created.currency == "KES"
        assert created.total_amount == Decimal("270.00")
        totals = ledger_totals(created)
        assert totals["item_amount"] == Decimal("233.33")
        assert totals["seller_share"] == Decimal("221.66")
        assert totals["seller_share"] + totals["platform_commission"] == totals["item_amount"]

    def test_requires_active_unit_of_work(self, ledger_service):
        order = OrderFactory()
        init = PaymentInitialization(authorization_url="", reference="ref_y")
        with pytest.raises(TransactionError):
            ledger_service.open_ledger(UnitOfWork("detached"), order, [], init)


@pytest.mark.django_db
class TestWebhookEvents:
    def test_checkout_completed_settles_payment(self, ledger_service, ledger):
        assert ledger_service.handle_event(event("checkout.session.completed", id=ledger.reference))

        ledger.refresh_from_db()
        assert ledger.is_settled
        assert ledger.paid_at is not None
        ledger.order.refresh_from_db()
        assert ledger.order.payment_status == "paid"

    def test_confirmation_is_idempotent(self, ledger_service, ledger):
        ledger_service.confirm_payment(ledger.reference)
        paid_at = Transaction.objects.get(pk=ledger.pk).paid_at

        ledger_service.confirm_payment(ledger.reference)

        assert Transaction.objects.get(pk=ledger.pk).paid_at == paid_at

    @pytest.mark.parametrize("event_type", ["transfer.created", "transfer.paid"])
    def test_transfer_completes_payout(self, ledger_service, ledger, event_type):
        assert ledger_service.handle_event(event(event_type, id="tr_lamp"))
        assert ledger.items.get(payout_reference="tr_lamp").payout_status == "completed"

    def test_succeeded_refund_completes_line_refund(self, ledger_service, ledger):
        assert ledger_service.handle_event(event("refund.updated", id="re_mug", status="succeeded"))

        item = ledger.items.select_related("line").get(refund_reference="re_mug")
        assert item.refund_status == "completed"
        assert item.line.refund_status == "completed"

    def test_unfinished_refund_is_ignored(self, ledger_service, ledger):
        assert not ledger_service.handle_event(event("refund.updated", id="re_mug", status="pending"))
        assert ledger.items.get(refund_reference="re_mug").refund_status == "pending"

    def test_unrelated_event_is_ignored(self, ledger_service):
        assert not ledger_service.handle_event(event("customer.created", id="cus_1"))

    def test_unknown_reference(self, ledger_service):
        with pytest.raises(NotFoundError):
            ledger_service.handle_event(event("checkout.session.completed", id="cs_missing"))


@pytest.mark.django_db
class TestReversePayment:
    @pytest.fixture(autouse=True)
    def setup(self, ledger_service):
        self.ledger_service = ledger_service
        self.order = OrderFactory(delivery_fee=Decimal("20.00"), total_amount=Decimal("270.00"))
        self.ledger = TransactionFactory(order=self.order, status="completed")
        self.listing = ListingFactory(inventory=3, orders_count=1)
        self.pending = OrderLineFactory(
            order=self.order, position=0, product_id=self.listing.product_id, price=Decimal("100.00"), quantity=2
        )
        self.delivered = OrderLineFactory(
            order=self.order, position=1, price=Decimal("50.00"), status="delivered", pending_released=True
        )
        for line in (self.pending, self.delivered):
            TransactionItemFactory(transaction=self.ledger, line=line)

    def charge_refunded(self, refunded=True, transfer_group=None):
        return event(
            "charge.refunded",
            id="ch_1",
            refunded=refunded,
            transfer_group=transfer_group or str(self.order.id),
        )

    def test_full_refund_reverses_the_payment(self):
        assert self.ledger_service.handle_event(self.charge_refunded())

        ledger = Transaction.objects.get(pk=self.ledger.pk)
        assert (ledger.status, ledger.is_reversed) == ("reversed", True)

        line = OrderLine.objects.get(pk=self.pending.pk)
        assert (line.status, line.cancelled, line.refund_status) == ("cancelled", True, "completed")
        assert line.refunded_amount == Decimal("200.00")
        item = ledger.items.get(line=line)
        assert (item.refund_status, item.refunded_amount) == ("completed", Decimal("200.00"))

        assert Listing.objects.get(pk=self.listing.pk).inventory == 5
        self.order.refresh_from_db()
        assert self.order.total_amount == Decimal("70.00")

    def test_delivered_lines_are_left_alone(self):
        self.ledger_service.handle_event(self.charge_refunded())

        line = OrderLine.objects.get(pk=self.delivered.pk)
        assert (line.status, line.cancelled, line.refund_status) == ("delivered", False, "none")

    def test_counters_release_pending_slot(self):
        self.ledger_service.reverse_payment(self.ledger.reference)

        buyer = self.order.buyer
        buyer.refresh_from_db()
        assert (buyer.pending_orders_count, buyer.failed_orders_count) == (-1, 1)
        assert OrderLine.objects.get(pk=self.pending.pk).pending_released

    def test_reversal_is_idempotent(self):
        self.ledger_service.reverse_payment(self.ledger.reference)
        self.ledger_service.reverse_payment(self.ledger.reference)

        assert Listing.objects.get(pk=self.listing.pk).inventory == 5
        buyer = self.order.buyer
        buyer.refresh_from_db()
        assert buyer.failed_orders_count == 1

    def test_partial_refund_is_ignored(self):
        assert not self.ledger_service.handle_event(self.charge_refunded(refunded=False))
        assert not Transaction.objects.get(pk=self.ledger.pk).is_reversed

    def test_charge_for_unknown_order(self):
        with pytest.raises(NotFoundError):
            self.ledger_service.handle_event(self.charge_refunded(transfer_group="not-an-order"))

    def test_late_checkout_confirmation_keeps_reversal(self):
        self.ledger_service.reverse_payment(self.ledger.reference)
        self.ledger_service.handle_event(event("checkout.session.completed", id=self.ledger.reference))
        assert Transaction.objects.get(pk=self.ledger.pk).status == "reversed"


@pytest.mark.django_db
class TestVerifyPayment:
    @pytest.fixture(autouse=True)
    def setup(self, ledger_service, payment):
        self.ledger_service = ledger_service
        self.payment = payment
        self.buyer = UserFactory()
        self.ledger = TransactionFactory(order=OrderFactory(buyer=self.buyer))

    def test_paid_session_settles_the_ledger(self):
        ledger = self.ledger_service.verify_payment(self.buyer, self.ledger.reference)

        assert ledger.is_settled
        assert ledger.paid_at is not None
        assert ledger.order.payment_status == "paid"
        assert self.payment.calls_for("verify_payment") == [{"reference": self.ledger.reference}]

    def test_settled_ledger_does_not_ask_the_gateway(self):
        self.ledger_service.confirm_payment(self.ledger.reference)

        self.ledger_service.verify_payment(self.buyer, self.ledger.reference)

        assert self.payment.calls_for("verify_payment") == []

    def test_unpaid_session_is_rejected(self):
        self.payment.set_payment_state(self.ledger.reference, "unpaid")

        with pytest.raises(ValidationError):
            self.ledger_service.verify_payment(self.buyer, self.ledger.reference)
        assert not Transaction.objects.get(pk=self.ledger.pk).is_settled

    def test_reversed_payment_is_recorded(self):
        line = OrderLineFactory(order=self.ledger.order)
        TransactionItemFactory(transaction=self.ledger, line=line)
        self.payment.set_payment_state(self.ledger.reference, "reversed")

        ledger = self.ledger_service.verify_payment(self.buyer, self.ledger.reference)

        assert (ledger.status, ledger.is_reversed) == ("reversed", True)
        assert OrderLine.objects.get(pk=line.pk).cancelled

    def test_gateway_failure_after_retries(self):
        self.payment.fail_always("verify_payment")

        with pytest.raises(ExternalServiceError):
            self.ledger_service.verify_payment(self.buyer, self.ledger.reference)
        assert len(self.payment.calls_for("verify_payment")) == 2

    def test_only_buyer_or_admin(self):
        with pytest.raises(AuthorizationError):
            self.ledger_service.verify_payment(UserFactory(), self.ledger.reference)
        assert self.ledger_service.verify_payment(AdminFactory(), self.ledger.reference).is_settled

    def test_unknown_reference(self):
        with pytest.raises(NotFoundError):
            self.ledger_service.verify_payment(self.buyer, "cs_missing")
