"""
Read-side order queries for buyers, sellers and admins.
"""

import uuid

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Prefetch

from marketplace.ordering.domain.exceptions import AuthorizationError, NotFoundError, ValidationError
from marketplace.ordering.domain.models.order import Order, OrderLine
from utils.service_base import BaseService

User = get_user_model()


def _user_id(value, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid {label}: {value}")


class OrderQueryService(BaseService):
    def get_order(self, user, order_id) -> Order:
        try:
            order = (
                Order.objects.select_related("buyer", "transaction")
                .prefetch_related(Prefetch("lines", to_attr="visible_lines"))
                .get(pk=order_id)
            )
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"Order {order_id} not found")

        is_party = order.buyer_id == user.id or any(line.seller_id == user.id for line in order.visible_lines)
        if not (is_party or user.is_admin()):
            raise AuthorizationError("You are not a party to this order")
        return order

    def list_seller_orders(self, user, seller_id):
        """Orders containing the seller's lines, each showing only those lines."""
        seller_uuid = _user_id(seller_id, "seller_id")
        if seller_uuid != user.id and not user.is_admin():
            raise AuthorizationError("You can only view your own sales")
        if not User.objects.filter(pk=seller_uuid).exists():
            raise NotFoundError(f"Seller {seller_id} not found")

        seller_lines = OrderLine.objects.filter(seller_id=seller_uuid)
        return list(
            Order.objects.filter(lines__seller_id=seller_uuid)
            .distinct()
            .select_related("buyer")
            .prefetch_related(Prefetch("lines", queryset=seller_lines, to_attr="visible_lines"))
        )

    def list_buyer_orders(self, user, buyer_id):
        buyer_uuid = _user_id(buyer_id, "buyer_id")
        if buyer_uuid != user.id and not user.is_admin():
            raise AuthorizationError("You can only view your own orders")
        if not User.objects.filter(pk=buyer_uuid).exists():
            raise NotFoundError(f"Buyer {buyer_id} not found")

        return list(
            Order.objects.filter(buyer_id=buyer_uuid)
            .select_related("buyer")
            .prefetch_related(Prefetch("lines", to_attr="visible_lines"))
        )
