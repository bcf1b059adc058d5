"""
Payment ledger bookkeeping.

The ledger (a Transaction and one TransactionItem per order line) is opened
at placement inside the placement UnitOfWork and afterwards only updated:
payment confirmation, payout completion, refund completion and whole-payment
reversal arrive as gateway webhooks, and the buyer's return from checkout
can pull the payment state from the gateway as well.
"""

import logging
import uuid
from decimal import Decimal
from typing import Iterable, Optional

from django.conf import settings
from django.utils import timezone

from infrastructure.payments import PaymentInitialization, PaymentProviderInterface, WebhookEvent
from marketplace.catalog.domain.services.inventory_service import InventoryService
from marketplace.infra.observability.metrics import payment_reversals_total
from marketplace.infra.observability.tracing import tracer
from marketplace.ordering.domain.exceptions import AuthorizationError, NotFoundError, ValidationError
from marketplace.ordering.domain.models.order import Order
from payment_system.models import Transaction, TransactionItem
from utils.retry_utils import RetryPolicy
from utils.service_base import BaseService
from utils.transaction_utils import UnitOfWork

logger = logging.getLogger(__name__)

# Lines past this point have left the seller; their stock is not put back.
RESTOCKABLE_STATUSES = ("pending", "processing")


class PaymentLedgerService(BaseService):
    def __init__(
        self,
        payment: Optional[PaymentProviderInterface] = None,
        inventory: Optional[InventoryService] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        super().__init__()
        self.payment = payment
        self.inventory = inventory or InventoryService()
        self.policy = policy or RetryPolicy.from_settings()

    def open_ledger(self, uow: UnitOfWork, order, lines: Iterable, init: PaymentInitialization) -> Transaction:
        """Create the order's Transaction and the commission split for every line."""
        uow.ensure_active()
        currency = getattr(settings, "ORDERS", {}).get("CURRENCY", "kes").upper()
        ledger = Transaction.objects.create(
            order=order,
            reference=init.reference,
            authorization_url=init.authorization_url or "",
            total_amount=order.total_amount,
            delivery_fee=order.delivery_fee,
            currency=currency,
        )

        items = []
        for line in lines:
            item_amount = line.line_total
            seller_share = line.seller_net
            items.append(
                TransactionItem(
                    transaction=ledger,
                    line=line,
                    seller_id=line.seller_id,
                    item_amount=item_amount,
                    commission_rate=line.commission_rate,
                    seller_share=seller_share,
                    platform_commission=item_amount - seller_share,
                )
            )
        TransactionItem.objects.bulk_create(items)

        self.logger.info(f"Opened ledger {ledger.reference} for order {order.id} with {len(items)} items")
        return ledger

    @BaseService.log_performance
    def confirm_payment(self, reference: str) -> Transaction:
        """Mark the payment settled. Repeated confirmations are no-ops."""
        with UnitOfWork("confirm_payment"):
            try:
                ledger = Transaction.objects.select_for_update().select_related("order").get(reference=reference)
            except Transaction.DoesNotExist:
                raise NotFoundError(f"No transaction with reference {reference}")

            if ledger.status in ("completed", "reversed"):
                self.logger.info(f"Payment {reference} already {ledger.status}, skipping")
                return ledger

            ledger.status = "completed"
            ledger.paid_at = timezone.now()
            ledger.save(update_fields=["status", "paid_at", "updated_at"])

            order = ledger.order
            order.payment_status = "paid"
            order.save(update_fields=["payment_status", "updated_at"])

        self.logger.info(f"Payment {reference} confirmed for order {order.id}")
        return ledger

    @BaseService.log_performance
    def verify_payment(self, user, reference: str) -> Transaction:
        """
        Pull a payment's state from the gateway and settle the ledger from it.

        A ledger that is already settled or reversed is returned without asking
        the gateway again.

        Raises:
            NotFoundError: No ledger for the reference
            AuthorizationError: Caller is neither the buyer nor an admin
            ValidationError: The gateway reports the payment as not completed
            ExternalServiceError: The gateway lookup failed after retries
        """
        from marketplace.ordering.domain.services.dispatcher import call_critical

        ledger = Transaction.objects.select_related("order").filter(reference=reference).first()
        if ledger is None:
            raise NotFoundError(f"No transaction with reference {reference}")
        if ledger.order.buyer_id != user.id and not user.is_admin():
            raise AuthorizationError("Only the buyer can verify this payment")
        if ledger.status in ("completed", "reversed"):
            self.logger.info(f"Payment {reference} already {ledger.status}, not asking the gateway")
            return ledger

        verification = call_critical(self.policy, "verify_payment", self.payment.verify_payment, reference)
        if not verification.paid:
            raise ValidationError(f"Payment {reference} has not been completed")

        ledger = self.confirm_payment(reference)
        if verification.reversed:
            ledger = self.reverse_payment(reference)
        return ledger

    @BaseService.log_performance
    def reverse_payment(self, reference: str) -> Transaction:
        """
        Record that the whole payment was given back to the buyer.

        Every line that is not cancelled or delivered is cancelled as fully
        refunded; stock comes back for lines the seller has not shipped yet.
        Reversing twice is a no-op.
        """
        from marketplace.ordering.domain.services.cancellation_service import record_failed_line

        with UnitOfWork("reverse_payment") as uow:
            try:
                ledger = Transaction.objects.select_for_update().get(reference=reference)
            except Transaction.DoesNotExist:
                raise NotFoundError(f"No transaction with reference {reference}")

            if ledger.is_reversed:
                self.logger.info(f"Payment {reference} already reversed, skipping")
                return ledger

            ledger.is_reversed = True
            ledger.status = "reversed"
            ledger.save(update_fields=["is_reversed", "status", "updated_at"])

            order = Order.objects.select_for_update().get(pk=ledger.order_id)
            lines = list(order.lines.select_for_update())
            items = {item.line_id: item for item in ledger.items.select_for_update()}

            cancelled = 0
            for line in lines:
                if line.cancelled or line.status == "delivered":
                    continue
                if line.status in RESTOCKABLE_STATUSES:
                    self.inventory.restore(uow, line.product_id, line.quantity)
                record_failed_line(line)
                line.cancelled = True
                line.status = "cancelled"
                line.refund_status = "completed"
                line.refunded_amount = line.line_total
                line.save(
                    update_fields=[
                        "cancelled",
                        "status",
                        "refund_status",
                        "refunded_amount",
                        "pending_released",
                        "updated_at",
                    ]
                )

                item = items.get(line.id)
                if item is not None:
                    item.refund_status = "completed"
                    item.refunded_amount = item.item_amount
                    item.save(update_fields=["refund_status", "refunded_amount", "updated_at"])
                cancelled += 1

            order.refresh_derived_fields(lines)

        payment_reversals_total.inc()
        self.logger.warning(f"Payment {reference} reversed; {cancelled} lines of order {order.id} cancelled")
        return ledger

    def complete_payout(self, payout_reference: str) -> TransactionItem:
        with UnitOfWork("complete_payout"):
            try:
                item = TransactionItem.objects.select_for_update().get(payout_reference=payout_reference)
            except TransactionItem.DoesNotExist:
                raise NotFoundError(f"No payout with reference {payout_reference}")
            if item.payout_status != "completed":
                item.payout_status = "completed"
                item.save(update_fields=["payout_status", "updated_at"])
        self.logger.info(f"Payout {payout_reference} completed for line {item.line_id}")
        return item

    def complete_refund(self, refund_reference: str) -> TransactionItem:
        with UnitOfWork("complete_refund"):
            try:
                item = (
                    TransactionItem.objects.select_for_update()
                    .select_related("line")
                    .get(refund_reference=refund_reference)
                )
            except TransactionItem.DoesNotExist:
                raise NotFoundError(f"No refund with reference {refund_reference}")
            if item.refund_status != "completed":
                item.refund_status = "completed"
                item.save(update_fields=["refund_status", "updated_at"])
                item.line.refund_status = "completed"
                item.line.save(update_fields=["refund_status", "updated_at"])
        self.logger.info(f"Refund {refund_reference} completed for line {item.line_id}")
        return item

    def reference_for_order(self, order_id) -> str:
        try:
            order_uuid = uuid.UUID(str(order_id))
        except (TypeError, ValueError, AttributeError):
            raise NotFoundError(f"No transaction for order {order_id}")
        reference = Transaction.objects.filter(order_id=order_uuid).values_list("reference", flat=True).first()
        if reference is None:
            raise NotFoundError(f"No transaction for order {order_id}")
        return reference

    def handle_event(self, event: WebhookEvent) -> bool:
        """
        Apply a verified gateway event to the ledger.

        Charges carry the order id as their transfer group; a charge refunded
        in full reverses the order's payment. Partial refunds are the
        line-level refunds already tracked through ``refund.updated``.

        Returns:
            True if the event type is one the ledger tracks, False if ignored
        """
        with tracer.start_as_current_span("PaymentLedgerService.handle_event") as span:
            span.set_attribute("event.type", event.event_type)
            data = event.data or {}

            if event.event_type == "checkout.session.completed":
                self.confirm_payment(data.get("id", ""))
                return True
            if event.event_type in ("transfer.created", "transfer.paid"):
                self.complete_payout(data.get("id", ""))
                return True
            if event.event_type == "refund.updated" and data.get("status") == "succeeded":
                self.complete_refund(data.get("id", ""))
                return True
            if event.event_type == "charge.refunded" and data.get("refunded"):
                self.reverse_payment(self.reference_for_order(data.get("transfer_group")))
                return True

            self.logger.info(f"Ignoring webhook event {event.event_id} of type {event.event_type}")
            return False


def ledger_totals(ledger: Transaction) -> dict:
    """Sum of the commission split across a ledger's items."""
    totals = {"item_amount": Decimal("0.00"), "seller_share": Decimal("0.00"), "platform_commission": Decimal("0.00")}
    for item in ledger.items.all():
        for key in totals:
            totals[key] += getattr(item, key)
    return totals
