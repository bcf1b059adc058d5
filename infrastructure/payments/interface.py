"""
Payment Provider Interface
===========================

Abstract base class defining the contract the order lifecycle consumes from
the payment gateway: seller sub-accounts, payment intents and their
verification, payouts, refunds and webhook verification.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional


@dataclass
class PayoutDetails:
    """
    Destination details used to provision a seller's payout sub-account.

    Attributes:
        business_name: Display name of the seller
        phone_number: Normalized local phone number (e.g. 0712345678)
        bank_code: Settlement bank / mobile money code
        country: ISO country code
        email: Seller contact email
    """

    business_name: str
    phone_number: str
    bank_code: str
    country: str
    email: Optional[str] = None


@dataclass
class PaymentInitialization:
    """
    Result of initializing a payment intent for an order.

    Attributes:
        authorization_url: URL the buyer is redirected to in order to pay
        reference: Gateway reference identifying the payment intent
        amount: Amount requested (major currency unit)
    """

    authorization_url: str
    reference: str
    amount: Optional[Decimal] = None


@dataclass
class PaymentVerification:
    """
    Gateway-side state of a payment intent, pulled on demand.

    Attributes:
        reference: Gateway reference the payment was initialized with
        paid: Whether the buyer completed the payment
        amount: Amount collected (major currency unit)
        payment_method: Channel the buyer paid with, if known
        reversed: Whether the whole payment has since been refunded or reversed
    """

    reference: str
    paid: bool
    amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    reversed: bool = False


@dataclass
class WebhookEvent:
    """
    A verified gateway callback.

    ``data`` is the event object; its ``id`` is the payment, transfer or
    refund reference the ledger matches on.
    """

    event_id: str
    event_type: str
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: int = 0


class PaymentProviderInterface(ABC):
    """
    Abstract interface for payment provider operations.

    Concrete implementations:
        - StripeProvider: Stripe Connect accounts, Checkout, transfers, refunds
        - MockPaymentProvider: In-memory provider for tests and development

    Every operation raises PaymentException on failure; callers decide
    whether and how to retry.
    """

    @abstractmethod
    def create_subaccount(self, seller, payout_details: PayoutDetails) -> str:
        """
        Provision a payout sub-account for a seller.

        Returns:
            Sub-account code to store on the seller

        Raises:
            PaymentException: If provisioning fails
        """
        pass

    @abstractmethod
    def initialize_payment(self, order, payer_email: str, delivery_fee: Decimal) -> PaymentInitialization:
        """
        Initialize a payment intent scoped to an order and the buyer's email.

        Raises:
            PaymentException: If the gateway rejects the request
        """
        pass

    @abstractmethod
    def initiate_payout(self, transaction_id, line_id) -> str:
        """
        Transfer a delivered line's seller share to the seller's sub-account.

        Returns:
            Payout reference

        Raises:
            PaymentException: If the transfer fails
        """
        pass

    @abstractmethod
    def initiate_refund(self, order_id, product_id: str) -> str:
        """
        Refund the buyer for one cancelled line of a settled order.

        Returns:
            Refund reference

        Raises:
            PaymentException: If the refund fails
        """
        pass

    @abstractmethod
    def verify_payment(self, reference: str) -> PaymentVerification:
        """
        Look up a payment intent on the gateway.

        Raises:
            PaymentException: If the lookup fails or the reference is unknown
        """
        pass

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify and parse webhook event from payment provider.

        Raises:
            PaymentException: If verification fails or signature is invalid
        """
        pass


class PaymentException(Exception):
    """Base exception for payment operations."""

    pass
