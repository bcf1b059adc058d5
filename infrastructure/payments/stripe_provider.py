"""
Stripe Payment Provider
========================

Concrete implementation of PaymentProviderInterface using Stripe Connect.

Seller sub-accounts are Express connected accounts, payment intents are
Checkout sessions, payouts are transfers to the connected account and
refunds are issued against the session's payment intent. Payment
verification reads the session back together with its latest charge; a
fully refunded charge counts as a reversal.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

import stripe
from django.conf import settings

from .interface import (
    PaymentException,
    PaymentInitialization,
    PaymentProviderInterface,
    PaymentVerification,
    PayoutDetails,
    WebhookEvent,
)

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to the smallest currency unit."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeProvider(PaymentProviderInterface):
    """
    Stripe payment provider implementation.

    Configuration (in settings.py):
        STRIPE_SECRET_KEY: Stripe secret API key
        STRIPE_WEBHOOK_SECRET: Webhook endpoint secret for signature verification
        ORDERS["CURRENCY"]: Settlement currency
        FRONTEND_URL: Base URL for checkout redirects
    """

    def __init__(self):
        stripe.api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
        self.webhook_secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
        self.currency = getattr(settings, "ORDERS", {}).get("CURRENCY", "kes").lower()
        self.frontend_url = getattr(settings, "FRONTEND_URL", "http://localhost:3000").rstrip("/")

        if not stripe.api_key:
            logger.warning("STRIPE_SECRET_KEY not configured")

    def create_subaccount(self, seller, payout_details: PayoutDetails) -> str:
        try:
            account = stripe.Account.create(
                type="express",
                country=payout_details.country,
                email=payout_details.email or seller.email,
                business_profile={"name": payout_details.business_name},
                capabilities={"transfers": {"requested": True}},
                metadata={
                    "seller_id": str(seller.id),
                    "phone_number": payout_details.phone_number,
                    "bank_code": payout_details.bank_code,
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe sub-account creation failed for seller {seller.id}: {str(e)}")
            raise PaymentException(f"Failed to create sub-account: {str(e)}") from e

        logger.info(f"Created Stripe connected account {account.id} for seller {seller.id}")
        return account.id

    def initialize_payment(self, order, payer_email: str, delivery_fee: Decimal) -> PaymentInitialization:
        line_items = [
            {
                "price_data": {
                    "currency": self.currency,
                    "unit_amount": to_minor_units(line.price),
                    "product_data": {"name": line.name, "metadata": {"product_id": line.product_id}},
                },
                "quantity": line.quantity,
            }
            for line in order.lines.all()
            if not line.cancelled
        ]
        if delivery_fee and Decimal(delivery_fee) > 0:
            line_items.append(
                {
                    "price_data": {
                        "currency": self.currency,
                        "unit_amount": to_minor_units(delivery_fee),
                        "product_data": {"name": "Delivery"},
                    },
                    "quantity": 1,
                }
            )

        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                line_items=line_items,
                mode="payment",
                customer_email=payer_email,
                success_url=f"{self.frontend_url}/placed-order/verify?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.frontend_url}/placed-order/cancelled",
                metadata={"order_id": str(order.id)},
                payment_intent_data={"transfer_group": str(order.id)},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment initialization failed for order {order.id}: {str(e)}")
            raise PaymentException(f"Failed to initialize payment: {str(e)}") from e

        logger.info(f"Created Stripe checkout session {session.id} for order {order.id}")
        return PaymentInitialization(authorization_url=session.url, reference=session.id, amount=order.total_amount)

    def initiate_payout(self, transaction_id, line_id) -> str:
        from payment_system.models import TransactionItem

        try:
            item = TransactionItem.objects.select_related("seller", "transaction").get(
                transaction_id=transaction_id, line_id=line_id
            )
        except TransactionItem.DoesNotExist as e:
            raise PaymentException(f"No ledger item for line {line_id} in transaction {transaction_id}") from e

        destination = item.seller.payout_subaccount_code
        if not destination:
            raise PaymentException(f"Seller {item.seller_id} has no payout sub-account")

        try:
            transfer = stripe.Transfer.create(
                amount=to_minor_units(item.seller_share),
                currency=self.currency,
                destination=destination,
                transfer_group=str(item.transaction.order_id),
                metadata={"transaction_id": str(transaction_id), "line_id": str(line_id)},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payout failed for line {line_id}: {str(e)}")
            raise PaymentException(f"Payout failed: {str(e)}") from e

        logger.info(f"Created Stripe transfer {transfer.id} for line {line_id}")
        return transfer.id

    def initiate_refund(self, order_id, product_id: str) -> str:
        from marketplace.models import OrderLine
        from payment_system.models import Transaction

        ledger = Transaction.objects.filter(order_id=order_id).first()
        line = OrderLine.objects.filter(order_id=order_id, product_id=product_id).first()
        if ledger is None or line is None:
            raise PaymentException(f"Nothing to refund for product {product_id} in order {order_id}")

        try:
            session = stripe.checkout.Session.retrieve(ledger.reference)
            if not session.payment_intent:
                raise PaymentException(f"Checkout session {ledger.reference} has no payment intent")
            refund = stripe.Refund.create(
                payment_intent=session.payment_intent,
                amount=to_minor_units(line.line_total),
                metadata={"order_id": str(order_id), "product_id": product_id},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refund failed for order {order_id}, product {product_id}: {str(e)}")
            raise PaymentException(f"Refund failed: {str(e)}") from e

        logger.info(f"Created Stripe refund {refund.id} for order {order_id}, product {product_id}")
        return refund.id

    def verify_payment(self, reference: str) -> PaymentVerification:
        try:
            session = stripe.checkout.Session.retrieve(reference, expand=["payment_intent.latest_charge"])
        except stripe.StripeError as e:
            logger.error(f"Stripe payment verification failed for {reference}: {str(e)}")
            raise PaymentException(f"Payment verification failed: {str(e)}") from e

        intent = session.payment_intent
        charge = intent.latest_charge if intent else None
        payment_method = None
        refunded = False
        if charge:
            details = charge.payment_method_details
            payment_method = details.type if details else None
            refunded = bool(charge.refunded)

        return PaymentVerification(
            reference=session.id,
            paid=session.payment_status == "paid",
            amount=Decimal(session.amount_total or 0) / 100,
            payment_method=payment_method,
            reversed=refunded,
        )

    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {str(e)}")
            raise PaymentException("Invalid webhook payload") from e
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {str(e)}")
            raise PaymentException("Invalid webhook signature") from e

        return WebhookEvent(
            event_id=event["id"],
            event_type=event["type"],
            data=event["data"]["object"],
            created_at=event["created"],
        )
