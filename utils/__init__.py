# Utils package for the marketplace backend

from .retry_utils import RetryPolicy
from .transaction_utils import TransactionError, TransactionTimeoutError, UnitOfWork


__all__ = ["RetryPolicy", "TransactionError", "TransactionTimeoutError", "UnitOfWork"]
