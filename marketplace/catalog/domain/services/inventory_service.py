"""
InventoryService - Reservation Coordinator

Reserves listing inventory for order lines with a single conditional UPDATE
per line, so concurrent placements against the same listing cannot oversell:
the write is conditioned on the inventory value at write time and the losing
request matches zero rows.
"""

import logging
from typing import Iterable, Tuple

from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from marketplace.catalog.domain.models.catalog import Listing
from marketplace.infra.observability.metrics import stock_reservation_failures
from marketplace.ordering.domain.exceptions import ConflictError
from utils.service_base import BaseService
from utils.transaction_utils import UnitOfWork

logger = logging.getLogger(__name__)


class InventoryService(BaseService):
    """
    Inventory mutations for the order lifecycle. Every call requires an
    active UnitOfWork; a ConflictError raised here aborts it.
    """

    def reserve(self, uow: UnitOfWork, lines: Iterable[Tuple[str, int]]) -> None:
        """
        Check-and-decrement inventory for each ``(product_id, quantity)`` pair.

        Raises:
            ConflictError: Listing missing, not verified, sold, or short on stock
        """
        uow.ensure_active()
        for product_id, quantity in lines:
            updated = Listing.objects.filter(
                product_id=product_id,
                verification_state=Listing.VERIFIED,
                is_sold=False,
                inventory__gte=quantity,
            ).update(
                inventory=F("inventory") - quantity,
                orders_count=F("orders_count") + 1,
                updated_at=timezone.now(),
            )
            if updated == 0:
                stock_reservation_failures.inc()
                self.logger.info(f"Reservation conflict: product={product_id}, quantity={quantity}")
                raise ConflictError(
                    f"Product {product_id} is not available in the requested quantity",
                    product_id=product_id,
                )

            Listing.objects.filter(product_id=product_id, inventory=0).update(is_sold=True)
            self.logger.debug(f"Reserved {quantity} of product {product_id}")

    def restore(self, uow: UnitOfWork, product_id: str, quantity: int) -> bool:
        """Return cancelled stock to a listing. A missing listing is skipped."""
        uow.ensure_active()
        updated = Listing.objects.filter(product_id=product_id).update(
            inventory=F("inventory") + quantity,
            orders_count=Greatest(F("orders_count") - 1, Value(0)),
            is_sold=False,
            updated_at=timezone.now(),
        )
        if updated == 0:
            self.logger.warning(f"Cannot restore inventory: listing {product_id} no longer exists")
            return False
        self.logger.info(f"Restored {quantity} of product {product_id}")
        return True

    def mark_sold_if_exhausted(self, uow: UnitOfWork, product_id: str, quantity: int) -> None:
        uow.ensure_active()
        Listing.objects.filter(product_id=product_id, inventory__lte=quantity, is_sold=False).update(
            is_sold=True, updated_at=timezone.now()
        )
