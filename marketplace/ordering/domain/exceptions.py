"""
Order lifecycle error taxonomy.

Domain code raises these; raising inside a UnitOfWork rolls it back. The
``code`` of each class is what the service layer reports in a failed
ServiceResult and what the API maps to an HTTP status.
"""

from utils.service_base import ErrorCodes, ServiceError


class OrderLifecycleError(ServiceError):
    code = ErrorCodes.INTERNAL_ERROR


class ValidationError(OrderLifecycleError):
    """Malformed, missing or out-of-range input. Nothing was mutated."""

    code = ErrorCodes.VALIDATION_ERROR


class AuthorizationError(OrderLifecycleError):
    """Caller is not the buyer, seller or admin the action requires."""

    code = ErrorCodes.PERMISSION_DENIED


class NotFoundError(OrderLifecycleError):
    """Referenced order, line, listing or user does not exist or does not match filters."""

    code = ErrorCodes.NOT_FOUND


class ConflictError(OrderLifecycleError):
    """Legal request that the current state forbids."""

    code = ErrorCodes.CONFLICT


class ExternalServiceError(OrderLifecycleError):
    """Payment gateway still failing after all retries."""

    code = ErrorCodes.EXTERNAL_SERVICE_ERROR

    def __init__(self, message: str, operation: str = "", **context):
        super().__init__(message, **context)
        self.operation = operation


class ConsistencyError(OrderLifecycleError):
    """A stored invariant the lifecycle relies on does not hold."""

    code = ErrorCodes.CONSISTENCY_ERROR
