"""
Payment Provider Factory
=========================

Builds the gateway adapter configured in settings.INFRASTRUCTURE["PAYMENT_PROVIDER"].
"""

import logging
from typing import Dict, Literal, Optional, Type

from django.conf import settings

from .interface import PaymentProviderInterface
from .mock_provider import MockPaymentProvider
from .stripe_provider import StripeProvider

logger = logging.getLogger(__name__)

PaymentBackend = Literal["stripe", "mock"]


class PaymentFactory:
    """
    Factory for payment gateway adapters.

    Usage:
        gateway = PaymentFactory.create()         # from settings, defaults to Stripe
        gateway = PaymentFactory.create("mock")   # in-memory, records calls
    """

    BACKENDS: Dict[str, Type[PaymentProviderInterface]] = {
        "stripe": StripeProvider,
        "mock": MockPaymentProvider,
    }

    @classmethod
    def create(cls, backend: Optional[PaymentBackend] = None) -> PaymentProviderInterface:
        backend_type = backend or getattr(settings, "INFRASTRUCTURE", {}).get("PAYMENT_PROVIDER", "stripe")

        try:
            provider_class = cls.BACKENDS[backend_type]
        except KeyError:
            raise ValueError(f"Invalid payment provider: {backend_type}. Must be one of {sorted(cls.BACKENDS)}")

        logger.info(f"Creating payment provider: {backend_type}")
        return provider_class()
