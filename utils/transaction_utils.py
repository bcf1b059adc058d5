"""
Transaction Utilities
=====================

Unit-of-Work wrapper around Django's ``transaction.atomic`` with an explicit
deadline, used by every state-changing order lifecycle operation.

Usage Examples:
    with UnitOfWork("place_order") as uow:
        reserve_lines(uow, lines)
        uow.check_deadline("initialize_payment")
        gateway.initialize_payment(...)
        uow.on_commit(dispatch_notifications)

    # A deadline that elapses inside the block aborts the whole transaction
    # with TransactionTimeoutError; nothing is committed.
"""

import logging
import time
from typing import Callable, Optional

from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30


class TransactionError(Exception):
    """Custom exception for transaction-related errors"""

    pass


class TransactionTimeoutError(TransactionError):
    """Raised when a unit of work exceeds its deadline. Safe to retry."""

    def __init__(self, name: str, timeout: float, stage: str):
        self.name = name
        self.timeout = timeout
        self.stage = stage
        super().__init__(f"Unit of work '{name}' exceeded {timeout}s before {stage}")


def get_default_timeout() -> float:
    return getattr(settings, "ORDERS", {}).get("UNIT_OF_WORK_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)


class UnitOfWork:
    """
    An atomic, all-or-nothing group of mutations with a bounded lifetime.

    Construct one at the top of an operation and pass it into every mutating
    call. The block commits exactly once on clean exit and rolls back on any
    exception. The deadline is checked explicitly at suspension points
    (before gateway calls) and always before commit.

    Args:
        name: Operation name used in logs
        timeout: Seconds before the unit of work is aborted (default from
                 ``ORDERS["UNIT_OF_WORK_TIMEOUT"]``)
        using: Database alias
    """

    def __init__(self, name: str, timeout: Optional[float] = None, using: str = "default"):
        self.name = name
        self.timeout = timeout if timeout is not None else get_default_timeout()
        self.using = using
        self.committed = False
        self._atomic = None
        self._deadline: Optional[float] = None

    @property
    def active(self) -> bool:
        return self._atomic is not None and not self.committed

    def __enter__(self) -> "UnitOfWork":
        if self._atomic is not None:
            raise TransactionError(f"Unit of work '{self.name}' cannot be entered twice")
        self._atomic = transaction.atomic(using=self.using)
        self._atomic.__enter__()
        self._deadline = time.monotonic() + self.timeout
        logger.debug(f"Unit of work '{self.name}' started (timeout {self.timeout}s)")
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        if exc_type is None:
            try:
                self.check_deadline("commit")
            except TransactionTimeoutError as timeout_error:
                self._atomic.__exit__(type(timeout_error), timeout_error, timeout_error.__traceback__)
                raise

        try:
            self._atomic.__exit__(exc_type, exc_value, traceback)
        except (IntegrityError, OperationalError) as e:
            logger.error(f"Unit of work '{self.name}' failed to commit: {e}")
            raise TransactionError(f"Transaction failed: {e}") from e

        if exc_type is None:
            self.committed = True
            logger.debug(f"Unit of work '{self.name}' committed")
        else:
            logger.info(f"Unit of work '{self.name}' rolled back: {exc_type.__name__}: {exc_value}")
        return False

    def remaining(self) -> float:
        if self._deadline is None:
            return self.timeout
        return self._deadline - time.monotonic()

    def check_deadline(self, stage: str = "next step") -> None:
        """Raise TransactionTimeoutError if the deadline has elapsed."""
        if self._deadline is not None and time.monotonic() > self._deadline:
            logger.error(f"Unit of work '{self.name}' timed out before {stage}")
            raise TransactionTimeoutError(self.name, self.timeout, stage)

    def ensure_active(self) -> None:
        if not self.active:
            raise TransactionError(f"Unit of work '{self.name}' is not active")

    def on_commit(self, func: Callable[[], None]) -> None:
        """Run ``func`` only after the outermost transaction commits."""
        self.ensure_active()
        transaction.on_commit(func, using=self.using)
