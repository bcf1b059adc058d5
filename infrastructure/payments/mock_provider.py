"""
Mock Payment Provider
=====================

In-memory implementation of PaymentProviderInterface for tests and local
development. Records every call and can be told to fail.
"""

import json
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from .interface import (
    PaymentException,
    PaymentInitialization,
    PaymentProviderInterface,
    PaymentVerification,
    PayoutDetails,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

MOCK_WEBHOOK_SIGNATURE = "mock-signature"


class MockPaymentProvider(PaymentProviderInterface):
    """
    Mock payment provider.

    Instead of calling a gateway, this provider:
        - Logs every operation
        - Stores calls in memory for verification
        - Fails on demand via ``fail_next`` / ``fail_always``
    """

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._failures: Dict[str, int] = {}
        self.payment_states: Dict[str, str] = {}

    def fail_next(self, operation: str, times: int = 1):
        """Make the next ``times`` calls to ``operation`` raise PaymentException."""
        self._failures[operation] = times

    def fail_always(self, operation: str):
        self._failures[operation] = -1

    def reset(self):
        self.calls.clear()
        self._failures.clear()
        self.payment_states.clear()

    def set_payment_state(self, reference: str, state: str):
        """State reported by ``verify_payment``: paid (the default), unpaid or reversed."""
        self.payment_states[reference] = state

    def calls_for(self, operation: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    def _record(self, operation: str, **kwargs):
        self.calls.append((operation, kwargs))
        remaining = self._failures.get(operation, 0)
        if remaining:
            if remaining > 0:
                self._failures[operation] = remaining - 1
            logger.info(f"[MOCK PAYMENT] {operation} failing on request")
            raise PaymentException(f"Mock {operation} failure")
        logger.info(f"[MOCK PAYMENT] {operation}: {kwargs}")

    def create_subaccount(self, seller, payout_details: PayoutDetails) -> str:
        self._record("create_subaccount", seller_id=seller.id, payout_details=payout_details)
        return f"acct_mock_{uuid.uuid4().hex[:16]}"

    def initialize_payment(self, order, payer_email: str, delivery_fee: Decimal) -> PaymentInitialization:
        self._record("initialize_payment", order_id=order.id, payer_email=payer_email, delivery_fee=delivery_fee)
        reference = f"mock_ref_{uuid.uuid4().hex[:16]}"
        return PaymentInitialization(
            authorization_url=f"https://checkout.mock/pay/{reference}",
            reference=reference,
            amount=order.total_amount,
        )

    def initiate_payout(self, transaction_id, line_id) -> str:
        self._record("initiate_payout", transaction_id=transaction_id, line_id=line_id)
        return f"tr_mock_{uuid.uuid4().hex[:16]}"

    def initiate_refund(self, order_id, product_id: str) -> str:
        self._record("initiate_refund", order_id=order_id, product_id=product_id)
        return f"re_mock_{uuid.uuid4().hex[:16]}"

    def verify_payment(self, reference: str) -> PaymentVerification:
        self._record("verify_payment", reference=reference)
        state = self.payment_states.get(reference, "paid")
        return PaymentVerification(
            reference=reference,
            paid=state in ("paid", "reversed"),
            payment_method="card",
            reversed=state == "reversed",
        )

    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        self._record("verify_webhook", signature=signature)
        if signature != MOCK_WEBHOOK_SIGNATURE:
            raise PaymentException("Invalid webhook signature")
        try:
            body = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise PaymentException("Invalid webhook payload") from e
        return WebhookEvent(
            event_id=body.get("id", f"evt_mock_{uuid.uuid4().hex[:12]}"),
            event_type=body.get("type", ""),
            data=body.get("data", {}),
            created_at=body.get("created", 0),
        )
