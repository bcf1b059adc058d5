from .order import LINE_STATUS_FLOW, Order, OrderLine


__all__ = [
    "LINE_STATUS_FLOW",
    "Order",
    "OrderLine",
]
