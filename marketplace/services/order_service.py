"""
OrderService - Order Lifecycle Facade

Single entry point for views and tasks. Domain services raise; this layer
turns every outcome into a ServiceResult so callers never see a partially
applied operation or an unhandled exception.
"""

from typing import List, Optional

from marketplace.ordering.domain.models.order import Order
from marketplace.ordering.domain.services import (
    CancellationService,
    OrderQueryService,
    PlacementResult,
    PlacementService,
    StatusTransitionService,
)
from utils.service_base import BaseService, ServiceResult


class OrderService(BaseService):
    """
    Service for the multi-seller order lifecycle.

    Responsibilities:
    - Place orders (reservation, payment intent, ledger)
    - Move lines through their status state machine
    - Cancel pending lines with refund and inventory compensation
    - Read orders for buyers, sellers and admins
    """

    def __init__(
        self,
        placement: PlacementService,
        transitions: StatusTransitionService,
        cancellation: CancellationService,
        queries: Optional[OrderQueryService] = None,
    ):
        super().__init__()
        self.placement = placement
        self.transitions = transitions
        self.cancellation = cancellation
        self.queries = queries or OrderQueryService()

    @BaseService.log_performance
    def place_order(
        self, user, customer_id, total_amount, items, delivery_address, delivery_fee
    ) -> ServiceResult[PlacementResult]:
        """
        Place a multi-seller order for the authenticated user.

        Example:
            >>> result = order_service.place_order(
            ...     user, str(user.id), "270.00",
            ...     items=[{"seller_id": ..., "product_id": "P-1", "name": "Lamp",
            ...             "color": "red", "price": "100.00", "quantity": 2}],
            ...     delivery_address={"country": "Kenya", "region": "Nairobi",
            ...                       "locality": "Westlands", "phone": "+254712345678"},
            ...     delivery_fee="20.00",
            ... )
            >>> result.value.authorization_url
        """
        return self.call(
            "place_order",
            self.placement.place,
            user,
            customer_id,
            total_amount,
            items,
            delivery_address,
            delivery_fee,
        )

    @BaseService.log_performance
    def update_line_status(
        self, user, order_id, line_index, new_status, seller_id=None, product_id=None
    ) -> ServiceResult[Order]:
        return self.call(
            "update_line_status",
            self.transitions.update,
            user,
            order_id,
            line_index,
            new_status,
            seller_id=seller_id,
            product_id=product_id,
        )

    @BaseService.log_performance
    def cancel_line(self, user, order_id, line_id) -> ServiceResult[Order]:
        return self.call("cancel_line", self.cancellation.cancel, user, order_id, line_id)

    @BaseService.log_performance
    def get_order(self, user, order_id) -> ServiceResult[Order]:
        return self.call("get_order", self.queries.get_order, user, order_id)

    @BaseService.log_performance
    def list_seller_orders(self, user, seller_id) -> ServiceResult[List[Order]]:
        return self.call("list_seller_orders", self.queries.list_seller_orders, user, seller_id)

    @BaseService.log_performance
    def list_buyer_orders(self, user, buyer_id) -> ServiceResult[List[Order]]:
        return self.call("list_buyer_orders", self.queries.list_buyer_orders, user, buyer_id)
