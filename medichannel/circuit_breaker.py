"""Circuit breaker guarding calls to the hosted backend.

Purpose: Fail fast while the backend is down instead of stacking up retries
behind every booking or login.

States:
- CLOSED: Normal operation, calls pass through
- OPEN: Backend failing, calls raise BackendUnavailableError immediately
- HALF_OPEN: Cooldown elapsed, one probe call is let through

Only exceptions listed in ``tracked_exceptions`` count as backend failures.
Business rejections (a 409 on a taken slot) pass through without tripping the
breaker.
"""
import time
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Type

from medichannel.errors import BackendUnavailableError
from medichannel.logging_config import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Circuit breaker for backend calls."""

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: float = 60,
        tracked_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
        name: str = "backend"
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Consecutive failures before opening the circuit
            timeout: Seconds to wait before a half-open probe
            tracked_exceptions: Exception types counted as failures
            name: Label used in log events
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.tracked_exceptions = tracked_exceptions
        self.name = name
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self._state = CircuitState.CLOSED

    @property
    def state(self) -> str:
        return self._state.value

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute function with circuit breaker protection.

        Raises:
            BackendUnavailableError: If the circuit is open
            Exception: Whatever ``func`` raises
        """
        if self._state == CircuitState.OPEN:
            if self._cooldown_elapsed():
                self._state = CircuitState.HALF_OPEN
                logger.info("circuit_half_open", breaker=self.name)
            else:
                raise BackendUnavailableError(
                    f"{self.name} unavailable, retry after "
                    f"{self._time_until_retry():.1f}s"
                )

        try:
            result = func(*args, **kwargs)
        except self.tracked_exceptions:
            self._on_failure()
            raise

        self._on_success()
        return result

    def reset(self):
        """Force the breaker closed."""
        self.failure_count = 0
        self.last_failure_time = None
        self._state = CircuitState.CLOSED

    def _cooldown_elapsed(self) -> bool:
        if self.last_failure_time is None:
            return True
        return time.monotonic() - self.last_failure_time >= self.timeout

    def _time_until_retry(self) -> float:
        if self.last_failure_time is None:
            return 0
        return max(0, self.timeout - (time.monotonic() - self.last_failure_time))

    def _on_success(self):
        self.failure_count = 0
        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.CLOSED
            logger.info("circuit_closed", breaker=self.name)

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = time.monotonic()

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            logger.warning("circuit_reopened", breaker=self.name)
        elif self.failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.error(
                "circuit_opened",
                breaker=self.name,
                failures=self.failure_count,
                timeout=self.timeout,
            )
