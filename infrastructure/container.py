"""
Dependency Injection Container
================================

Process-wide service locator. Adapters are built from settings on first
use; the order lifecycle services are wired to whichever adapters are
cached at that moment.

Usage:
    from infrastructure.container import container

    orders = container.order_service()
    result = orders.cancel_line(request.user, order_id, line_id)

Tests swap adapters by asking for an explicit backend before the first
``order_service()`` call, e.g. ``container.payment("mock")``, and call
``container.reset()`` afterwards.
"""

import logging
from typing import Optional

from .email import EmailFactory, EmailServiceInterface
from .notifications import NotificationFactory, NotificationServiceInterface
from .payments import PaymentFactory, PaymentProviderInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Singleton: every ``ServiceContainer()`` call returns the same object."""

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._clear()
            self._initialized = True

    def _clear(self):
        # Adapters
        self._email: Optional[EmailServiceInterface] = None
        self._payment: Optional[PaymentProviderInterface] = None
        self._notifications: Optional[NotificationServiceInterface] = None

        # Lifecycle services
        self._inventory_service = None
        self._ledger_service = None
        self._dispatcher = None
        self._order_service = None

    # An explicit backend always builds a fresh adapter and replaces the cached one.

    def email(self, backend: Optional[str] = None) -> EmailServiceInterface:
        if self._email is None or backend is not None:
            self._email = EmailFactory.create(backend)
            logger.debug(f"Email channel: {type(self._email).__name__}")
        return self._email

    def payment(self, backend: Optional[str] = None) -> PaymentProviderInterface:
        if self._payment is None or backend is not None:
            self._payment = PaymentFactory.create(backend)
            logger.debug(f"Payment gateway: {type(self._payment).__name__}")
        return self._payment

    def notifications(self, backend: Optional[str] = None) -> NotificationServiceInterface:
        if self._notifications is None or backend is not None:
            self._notifications = NotificationFactory.create(backend)
            logger.debug(f"Notification channel: {type(self._notifications).__name__}")
        return self._notifications

    # Domain services are imported lazily: their modules import Django models.

    def inventory_service(self):
        if self._inventory_service is None:
            from marketplace.catalog.domain.services import InventoryService

            self._inventory_service = InventoryService()
        return self._inventory_service

    def ledger_service(self):
        if self._ledger_service is None:
            from payment_system.domain.services.ledger_service import PaymentLedgerService

            self._ledger_service = PaymentLedgerService(payment=self.payment(), inventory=self.inventory_service())
        return self._ledger_service

    def side_effect_dispatcher(self):
        if self._dispatcher is None:
            from marketplace.ordering.domain.services import SideEffectDispatcher

            self._dispatcher = SideEffectDispatcher(notifications=self.notifications(), email=self.email())
        return self._dispatcher

    def order_service(self):
        """OrderService facade over placement, status transitions, cancellation and queries."""
        if self._order_service is None:
            from marketplace.ordering.domain.services import (
                CancellationService,
                PlacementService,
                StatusTransitionService,
            )
            from marketplace.services import OrderService

            payment = self.payment()
            inventory = self.inventory_service()
            dispatcher = self.side_effect_dispatcher()
            self._order_service = OrderService(
                placement=PlacementService(
                    payment=payment,
                    inventory=inventory,
                    ledger=self.ledger_service(),
                    dispatcher=dispatcher,
                ),
                transitions=StatusTransitionService(payment=payment, inventory=inventory, dispatcher=dispatcher),
                cancellation=CancellationService(payment=payment, inventory=inventory, dispatcher=dispatcher),
            )
            logger.info(f"Order services wired to {type(payment).__name__}")
        return self._order_service

    def reset(self):
        """Drop every cached adapter and service."""
        self._clear()
        logger.info("Service container reset")


container = ServiceContainer()


def get_email() -> EmailServiceInterface:
    return container.email()


def get_payment() -> PaymentProviderInterface:
    return container.payment()


def get_notifications() -> NotificationServiceInterface:
    return container.notifications()
