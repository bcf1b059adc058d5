from marketplace.catalog.domain.models import Listing
from marketplace.ordering.domain.models import Order, OrderLine


__all__ = [
    "Listing",
    "Order",
    "OrderLine",
]
