"""
Bounded retry policy built on tenacity.

The policy only decides *how* to retry (attempt count, linear backoff,
which exceptions count as failures). What happens after the last attempt
is decided by the caller.
"""

import logging
from typing import Any, Callable, Optional, Tuple, Type

from django.conf import settings
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_incrementing

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Execute a fallible callable up to ``attempts`` times.

    Delay before retry ``n`` is ``n * backoff`` seconds (linear backoff).
    The final exception is re-raised unchanged once attempts are exhausted.
    """

    def __init__(
        self,
        attempts: int = 3,
        backoff: float = 1.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.attempts = attempts
        self.backoff = backoff
        self.retry_on = retry_on

    @classmethod
    def from_settings(cls, retry_on: Tuple[Type[BaseException], ...] = (Exception,)) -> "RetryPolicy":
        orders = getattr(settings, "ORDERS", {})
        return cls(
            attempts=orders.get("RETRY_ATTEMPTS", 3),
            backoff=orders.get("RETRY_BACKOFF_SECONDS", 1),
            retry_on=retry_on,
        )

    def with_retry_on(self, retry_on: Tuple[Type[BaseException], ...]) -> "RetryPolicy":
        return RetryPolicy(attempts=self.attempts, backoff=self.backoff, retry_on=retry_on)

    def call(
        self,
        func: Callable[..., Any],
        *args,
        label: Optional[str] = None,
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
        **kwargs,
    ) -> Any:
        """
        Run ``func(*args, **kwargs)`` under the policy.

        ``on_retry(attempt_number, error)`` is called before each sleep.
        """
        label = label or getattr(func, "__name__", "operation")

        def log_retry(retry_state):
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(f"{label} failed (attempt {retry_state.attempt_number}/{self.attempts}): {error}")
            if on_retry is not None:
                on_retry(retry_state.attempt_number, error)

        retrying = Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_incrementing(start=self.backoff, increment=self.backoff),
            retry=retry_if_exception_type(self.retry_on),
            before_sleep=log_retry,
            reraise=True,
        )
        return retrying(func, *args, **kwargs)
