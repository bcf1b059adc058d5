"""
Shared service-layer foundation.

Domain code raises ServiceError subclasses for expected failures; a
service facade converts them into a ServiceResult at its boundary with
``BaseService.call``, so views map error codes to HTTP statuses in one
place and never see a half-applied operation.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar

from .transaction_utils import TransactionTimeoutError

T = TypeVar("T")


class ErrorCodes:
    VALIDATION_ERROR = "validation_error"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    EXTERNAL_SERVICE_ERROR = "external_service_error"
    CONSISTENCY_ERROR = "consistency_error"
    TRANSACTION_TIMEOUT = "transaction_timeout"
    INTERNAL_ERROR = "internal_error"


class ServiceError(Exception):
    """
    Expected failure of a service operation.

    Subclasses set ``code`` to one of ErrorCodes. Keyword arguments are kept
    as ``context`` for logging and never shown to API callers.
    """

    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of one service operation.

    ``value`` is set when ``ok``; ``error`` (one of ErrorCodes) and
    ``error_detail`` are set otherwise.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None

    def to_dict(self) -> dict:
        if self.ok:
            return {"success": True, "data": self.value}
        return {"success": False, "error": {"code": self.error, "message": self.error_detail}}


def service_ok(value: T) -> ServiceResult[T]:
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "") -> ServiceResult:
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error)


class BaseService:
    """
    Common plumbing for services: a per-class logger, ``call`` to convert
    raised service errors into results, and ``log_performance``.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    def call(self, operation: str, func: Callable, *args, **kwargs) -> ServiceResult:
        try:
            return service_ok(func(*args, **kwargs))
        except ServiceError as e:
            if e.context:
                self.logger.info(f"{operation} rejected ({e.code}): {e.message} {e.context}")
            return service_err(e.code, e.message)
        except TransactionTimeoutError as e:
            self.logger.warning(f"{operation} timed out: {e}")
            return service_err(ErrorCodes.TRANSACTION_TIMEOUT, str(e))
        except Exception as e:
            self.logger.error(f"Unexpected error in {operation}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, "An unexpected error occurred")

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """Log how long a service method took and the error code of a failed result."""

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            name = f"{self.__class__.__name__}.{func.__name__}"
            started = time.perf_counter()
            result = func(self, *args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            if isinstance(result, ServiceResult) and not result.ok:
                self.logger.warning(f"{name} failed with '{result.error}' after {elapsed_ms:.1f}ms")
            else:
                self.logger.info(f"{name} finished in {elapsed_ms:.1f}ms")
            return result

        return wrapper
