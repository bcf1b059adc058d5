"""
Marketplace Service Layer

Usage:
    from infrastructure.container import container

    result = container.order_service().cancel_line(user, order_id, line_id)
    if result.ok:
        order = result.value
    else:
        error = result.error
"""

from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

from .order_service import OrderService

__all__ = [
    "BaseService",
    "ServiceResult",
    "service_ok",
    "service_err",
    "ErrorCodes",
    "OrderService",
]
