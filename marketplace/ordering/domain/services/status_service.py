"""
StatusTransitionService - drives one order line through its state machine.

A delivered line pays its seller out inside the same UnitOfWork as the
status change, so a flipped status without an accepted payout is never
committed.
"""

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import F

from infrastructure.payments import PaymentProviderInterface
from marketplace.catalog.domain.services.inventory_service import InventoryService
from marketplace.infra.observability.metrics import (
    line_transitions_total,
    payouts_initiated_total,
    unit_of_work_duration,
)
from marketplace.infra.observability.tracing import add_span_attributes, tracer
from marketplace.ordering.domain import state_machine
from marketplace.ordering.domain.exceptions import ConflictError, ConsistencyError, NotFoundError
from marketplace.ordering.domain.models.order import Order
from payment_system.models import Transaction, TransactionItem
from utils.retry_utils import RetryPolicy
from utils.service_base import BaseService
from utils.transaction_utils import UnitOfWork

from .dispatcher import SideEffectDispatcher, call_critical
from .notification_plans import status_intents

User = get_user_model()
logger = logging.getLogger(__name__)


def release_pending(line) -> None:
    """Decrement buyer and seller pending counters once per line."""
    if line.pending_released:
        return
    User.objects.filter(pk=line.order.buyer_id).update(pending_orders_count=F("pending_orders_count") - 1)
    User.objects.filter(pk=line.seller_id).update(pending_orders_count=F("pending_orders_count") - 1)
    line.pending_released = True


def lock_order(order_id) -> Order:
    try:
        return Order.objects.select_for_update().select_related("buyer").get(pk=order_id)
    except (Order.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(f"Order {order_id} not found")


class StatusTransitionService(BaseService):
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

    def update(self, user, order_id, line_index: int, new_status: str, seller_id=None, product_id=None) -> Order:
        """
        Move line ``line_index`` of an order to ``new_status``.

        Raises:
            ValidationError: Unknown target status
            NotFoundError: Order or line missing, or filters do not match
            ConflictError: Line cancelled or transition not allowed
            AuthorizationError: Caller has the wrong role for the target
            ConsistencyError: Ledger missing on delivery
            ExternalServiceError: Payout failed after retries
        """
        state_machine.validate_target(new_status)

        with tracer.start_as_current_span("order.update_line_status") as span:
            add_span_attributes(
                span, **{"order.id": order_id, "line.index": line_index, "line.new_status": new_status}
            )
            with unit_of_work_duration.labels(operation="update_line_status").time():
                with UnitOfWork("update_line_status") as uow:
                    order = lock_order(order_id)
                    lines = list(order.lines.select_for_update().select_related("seller"))
                    line = self._select_line(order, lines, line_index, seller_id, product_id)

                    if line.cancelled:
                        raise ConflictError(f"Line {line_index} of order {order.id} is cancelled")
                    state_machine.check_role(line, new_status, user)
                    previous = line.status
                    state_machine.check_transition(previous, new_status)

                    line.status = new_status
                    if state_machine.is_leaving_pending(previous, new_status):
                        release_pending(line)
                    if new_status == "delivered":
                        self._complete_delivery(uow, order, line)
                    line.save(update_fields=["status", "pending_released", "updated_at"])
                    order.refresh_derived_fields(lines)

                    self.dispatcher.schedule(uow, status_intents(order, line, new_status, user))

        line_transitions_total.labels(from_status=previous, to_status=new_status).inc()
        self.logger.info(f"Order {order.id} line {line_index}: {previous} -> {new_status} by user {user.id}")
        return order

    def _select_line(self, order, lines, line_index, seller_id, product_id):
        try:
            index = int(line_index)
        except (TypeError, ValueError):
            raise NotFoundError(f"Line {line_index} not found in order {order.id}")
        line = next((candidate for candidate in lines if candidate.position == index), None)
        if line is None:
            raise NotFoundError(f"Line {line_index} not found in order {order.id}")
        if seller_id is not None and str(line.seller_id) != str(seller_id):
            raise NotFoundError(f"Line {line_index} of order {order.id} does not match filters")
        if product_id is not None and line.product_id != str(product_id):
            raise NotFoundError(f"Line {line_index} of order {order.id} does not match filters")
        line.order = order
        return line

    def _complete_delivery(self, uow: UnitOfWork, order, line) -> None:
        net = line.seller_net
        User.objects.filter(pk=line.seller_id).update(
            completed_orders_count=F("completed_orders_count") + 1,
            sales_count=F("sales_count") + 1,
            total_sales=F("total_sales") + net,
            balance=F("balance") + net,
        )
        User.objects.filter(pk=order.buyer_id).update(completed_orders_count=F("completed_orders_count") + 1)
        self.inventory.mark_sold_if_exhausted(uow, line.product_id, line.quantity)

        try:
            ledger = Transaction.objects.get(order=order)
        except Transaction.DoesNotExist:
            logger.error(f"Consistency violation: order {order.id} delivered line {line.id} without a transaction")
            raise ConsistencyError(f"No transaction found for order {order.id}", order_id=str(order.id))
        try:
            item = TransactionItem.objects.select_for_update().get(transaction=ledger, line=line)
        except TransactionItem.DoesNotExist:
            logger.error(f"Consistency violation: transaction {ledger.reference} has no item for line {line.id}")
            raise ConsistencyError(
                f"No transaction item for line {line.id} in order {order.id}",
                order_id=str(order.id),
                line_id=str(line.id),
            )

        if item.payout_status != "pending":
            self.logger.warning(f"Payout for line {line.id} already {item.payout_status}, skipping")
            return

        uow.check_deadline("initiate_payout")
        reference = call_critical(self.policy, "initiate_payout", self.payment.initiate_payout, ledger.id, line.id)
        item.payout_status = "processing"
        item.payout_reference = reference
        item.save(update_fields=["payout_status", "payout_reference", "updated_at"])
        payouts_initiated_total.inc()
        self.logger.info(f"Payout {reference} initiated for line {line.id}: {net}")
