"""
Payment Service Abstraction Layer
==================================

Gateway operations consumed by the order lifecycle, behind one interface.
"""

from .factory import PaymentFactory
from .interface import (
    PaymentException,
    PaymentInitialization,
    PaymentProviderInterface,
    PaymentVerification,
    PayoutDetails,
    WebhookEvent,
)
from .mock_provider import MockPaymentProvider
from .stripe_provider import StripeProvider

__all__ = [
    "PaymentProviderInterface",
    "PaymentInitialization",
    "PaymentVerification",
    "PayoutDetails",
    "WebhookEvent",
    "PaymentException",
    "MockPaymentProvider",
    "StripeProvider",
    "PaymentFactory",
]
