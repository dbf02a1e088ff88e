"""Tests for circuit breaker pattern."""
import time

import pytest

from medichannel.circuit_breaker import CircuitBreaker
from medichannel.errors import BackendUnavailableError, PersistenceError


def failing_call():
    raise ConnectionError("backend down")


class TestCircuitBreaker:
    """Test circuit breaker behavior."""

    def test_allows_requests_when_closed(self):
        cb = CircuitBreaker(failure_threshold=3, timeout=1)
        assert cb.call(lambda: "success") == "success"
        assert cb.state == "closed"

    def test_opens_after_threshold_failures(self):
        cb = CircuitBreaker(failure_threshold=3, timeout=1)

        for _ in range(3):
            with pytest.raises(ConnectionError):
                cb.call(failing_call)

        assert cb.state == "open"

        # Fails fast without attempting the call
        with pytest.raises(BackendUnavailableError):
            cb.call(lambda: pytest.fail("should not be called"))

    def test_open_error_is_a_persistence_error(self):
        assert issubclass(BackendUnavailableError, PersistenceError)

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=2, timeout=0.05)
        for _ in range(2):
            with pytest.raises(ConnectionError):
                cb.call(failing_call)

        time.sleep(0.06)

        with pytest.raises(ConnectionError):
            cb.call(failing_call)
        assert cb.state == "open"

    def test_half_open_success_closes(self):
        cb = CircuitBreaker(failure_threshold=2, timeout=0.05)
        for _ in range(2):
            with pytest.raises(ConnectionError):
                cb.call(failing_call)

        time.sleep(0.06)

        assert cb.call(lambda: "recovered") == "recovered"
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=3, timeout=1)
        for _ in range(2):
            with pytest.raises(ConnectionError):
                cb.call(failing_call)
        cb.call(lambda: "ok")
        assert cb.failure_count == 0

    def test_untracked_exceptions_do_not_count(self):
        def rejected_call():
            raise ValueError("bad input")

        cb = CircuitBreaker(failure_threshold=1, timeout=1, tracked_exceptions=(ConnectionError,))
        with pytest.raises(ValueError):
            cb.call(rejected_call)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_reset(self):
        cb = CircuitBreaker(failure_threshold=1, timeout=60)
        with pytest.raises(ConnectionError):
            cb.call(failing_call)
        assert cb.state == "open"
        cb.reset()
        assert cb.state == "closed"
