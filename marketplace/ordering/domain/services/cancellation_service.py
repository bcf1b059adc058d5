"""
CancellationService - cancels a pending order line and compensates for it.

Cancellation, refund request, inventory restore and counter updates commit
together or not at all. A refund request that the gateway never accepted
leaves the line uncancelled.
"""

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db.models import F

from infrastructure.payments import PaymentProviderInterface
from marketplace.catalog.domain.services.inventory_service import InventoryService
from marketplace.infra.observability.metrics import (
    line_cancellations_total,
    refunds_initiated_total,
    unit_of_work_duration,
)
from marketplace.infra.observability.tracing import add_span_attributes, tracer
from marketplace.ordering.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    ConsistencyError,
    NotFoundError,
)
from marketplace.ordering.domain.models.order import OrderLine
from payment_system.models import Transaction, TransactionItem
from utils.retry_utils import RetryPolicy
from utils.service_base import BaseService
from utils.transaction_utils import UnitOfWork

from .dispatcher import SideEffectDispatcher, call_critical
from .notification_plans import cancellation_intents
from .status_service import lock_order

User = get_user_model()
logger = logging.getLogger(__name__)


class CancellationService(BaseService):
    def __init__(
        self,
        payment: PaymentProviderInterface,
        inventory: InventoryService,
        dispatcher: SideEffectDispatcher,
        policy: Optional[RetryPolicy] = None,
    ):
        super().__init__()
        self.payment = payment
        self.inventory = inventory
        self.dispatcher = dispatcher
        self.policy = policy or RetryPolicy.from_settings()

    def cancel(self, user, order_id, line_id):
        """
        Cancel one pending line.

        Raises:
            NotFoundError: Order or line missing
            AuthorizationError: Caller is neither the buyer nor the line's seller
            ConflictError: Already cancelled, not pending, reversed or already refunded
            ExternalServiceError: Refund failed after retries
        """
        with tracer.start_as_current_span("order.cancel_line") as span:
            add_span_attributes(span, **{"order.id": order_id, "line.id": line_id})
            with unit_of_work_duration.labels(operation="cancel_line").time():
                with UnitOfWork("cancel_line") as uow:
                    order = lock_order(order_id)
                    lines = list(order.lines.select_for_update().select_related("seller"))
                    line = next((candidate for candidate in lines if str(candidate.id) == str(line_id)), None)
                    if line is None:
                        raise NotFoundError(f"Line {line_id} not found in order {order.id}")
                    line.order = order

                    if user.id not in (order.buyer_id, line.seller_id):
                        raise AuthorizationError("Only the buyer or the seller can cancel this item")
                    if line.cancelled:
                        raise ConflictError(f"Line {line_id} is already cancelled")
                    if line.status != "pending":
                        raise ConflictError(f"Only pending items can be cancelled (item is {line.status})")

                    line.cancelled = True
                    line.status = "cancelled"
                    line.refunded_amount = line.line_total
                    refund_message = self._refund(uow, order, line)

                    self.inventory.restore(uow, line.product_id, line.quantity)
                    record_failed_line(line)
                    line.save(
                        update_fields=[
                            "cancelled",
                            "status",
                            "refunded_amount",
                            "refund_status",
                            "pending_released",
                            "updated_at",
                        ]
                    )
                    order.refresh_derived_fields(lines)

                    self.dispatcher.schedule(uow, cancellation_intents(order, line, user, refund_message))

        line_cancellations_total.labels(refunded=str(line.refund_status == "pending").lower()).inc()
        self.logger.info(f"Line {line.id} of order {order.id} cancelled by user {user.id}. {refund_message}")
        return order

    def _refund(self, uow: UnitOfWork, order, line: OrderLine) -> str:
        """Request a refund when the order's payment has settled. Returns a message for the notification."""
        try:
            ledger = Transaction.objects.select_for_update().get(order=order)
        except Transaction.DoesNotExist:
            return "No payment was taken, so no refund is needed."

        if ledger.is_reversed or ledger.status == "reversed":
            raise ConflictError(f"Transaction {ledger.reference} has already been reversed")

        try:
            item = TransactionItem.objects.select_for_update().get(transaction=ledger, line=line)
        except TransactionItem.DoesNotExist:
            logger.error(f"Consistency violation: transaction {ledger.reference} has no item for line {line.id}")
            raise ConsistencyError(
                f"No transaction item for line {line.id} in order {order.id}",
                order_id=str(order.id),
                line_id=str(line.id),
            )
        if item.refund_status != "none":
            raise ConflictError(f"A refund for line {line.id} has already been requested")

        if not ledger.is_settled:
            return "Payment was not completed, so no refund is needed."

        uow.check_deadline("initiate_refund")
        reference = call_critical(
            self.policy, "initiate_refund", self.payment.initiate_refund, order.id, line.product_id
        )
        line.refund_status = "pending"
        item.refund_status = "pending"
        item.refunded_amount = line.refunded_amount
        item.refund_reference = reference
        item.save(update_fields=["refund_status", "refunded_amount", "refund_reference", "updated_at"])
        refunds_initiated_total.inc()
        return f"A refund of {line.refunded_amount} has been initiated for the buyer."


def record_failed_line(line: OrderLine) -> None:
    """Count a line as failed for its buyer and seller and release its pending slot."""
    for user_id in (line.order.buyer_id, line.seller_id):
        updates = {"failed_orders_count": F("failed_orders_count") + 1}
        if not line.pending_released:
            updates["pending_orders_count"] = F("pending_orders_count") - 1
        User.objects.filter(pk=user_id).update(**updates)
    line.pending_released = True
