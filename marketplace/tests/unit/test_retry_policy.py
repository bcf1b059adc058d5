from unittest.mock import Mock

import pytest

from infrastructure.payments import PaymentException
from marketplace.ordering.domain.exceptions import ExternalServiceError
from marketplace.ordering.domain.services import call_best_effort, call_critical
from utils.retry_utils import RetryPolicy


@pytest.fixture
def policy():
    return RetryPolicy(attempts=3, backoff=0)


@pytest.mark.unit
class TestRetryPolicy:
    def test_returns_first_success(self, policy):
        func = Mock(side_effect=[ValueError("boom"), "ok"])
        assert policy.call(func, "a", key="b") == "ok"
        assert func.call_count == 2
        func.assert_called_with("a", key="b")

    def test_reraises_last_error_after_attempts(self, policy):
        func = Mock(side_effect=ValueError("still broken"))
        with pytest.raises(ValueError, match="still broken"):
            policy.call(func)
        assert func.call_count == 3

    def test_only_listed_exceptions_are_retried(self):
        policy = RetryPolicy(attempts=3, backoff=0, retry_on=(PaymentException,))
        func = Mock(side_effect=KeyError("not retried"))
        with pytest.raises(KeyError):
            policy.call(func)
        assert func.call_count == 1

    def test_on_retry_sees_each_failed_attempt(self, policy):
        seen = []
        func = Mock(side_effect=[ValueError("1"), ValueError("2"), "ok"])
        policy.call(func, on_retry=lambda attempt, error: seen.append((attempt, str(error))))
        assert seen == [(1, "1"), (2, "2")]

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(attempts=0)

    def test_from_settings(self, settings):
        settings.ORDERS = {**settings.ORDERS, "RETRY_ATTEMPTS": 5, "RETRY_BACKOFF_SECONDS": 0.5}
        policy = RetryPolicy.from_settings()
        assert policy.attempts == 5
        assert policy.backoff == 0.5


@pytest.mark.unit
class TestCallModes:
    def test_critical_recovers_from_transient_gateway_error(self, policy):
        func = Mock(side_effect=[PaymentException("timeout"), "ref_1"])
        assert call_critical(policy, "initiate_payout", func) == "ref_1"

    def test_critical_raises_external_service_error_when_exhausted(self, policy):
        func = Mock(side_effect=PaymentException("down"))
        with pytest.raises(ExternalServiceError) as exc:
            call_critical(policy, "initiate_refund", func)
        assert exc.value.operation == "initiate_refund"
        assert exc.value.code == "external_service_error"
        assert func.call_count == 3

    def test_critical_does_not_retry_programming_errors(self, policy):
        func = Mock(side_effect=TypeError("bad call"))
        with pytest.raises(TypeError):
            call_critical(policy, "initialize_payment", func)
        assert func.call_count == 1

    def test_best_effort_retries_false_then_succeeds(self, policy):
        func = Mock(side_effect=[False, True])
        assert call_best_effort(policy, "notify", func) is True
        assert func.call_count == 2

    def test_best_effort_swallows_exhaustion(self, policy):
        func = Mock(side_effect=RuntimeError("smtp down"))
        assert call_best_effort(policy, "email", func) is False
        assert func.call_count == 3
