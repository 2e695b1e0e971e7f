"""
Retries for backend calls: exponential backoff, Retry-After and a circuit breaker.

Used for table queries, RPCs and auth calls. Edge function invocations are
never passed through it, since a repeated bulk fetch duplicates work.
"""

import dataclasses
import logging
import random
import threading
import time
from typing import Any, Callable, Optional

from ar_admin.services.error_classifier import ErrorClassifier, ErrorType

logger = logging.getLogger(__name__)


class RetryExhaustedException(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception


class CircuitBreakerError(Exception):
    """Raised while the backend is considered unavailable."""


class CircuitBreaker:
    """
    Stops calling the backend after repeated exhausted calls.

    The breaker opens after ``threshold`` consecutive failures. Once
    ``timeout`` seconds have passed one trial call is let through
    (half-open); its outcome closes or re-opens the breaker.
    """

    def __init__(self, threshold: int = 10, timeout: float = 60.0):
        self.threshold = threshold
        self.timeout = timeout
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self.opened_at is not None

    def allow(self) -> bool:
        """Whether a call may go out now."""
        with self._lock:
            if self.opened_at is None:
                return True
            if time.time() - self.opened_at >= self.timeout:
                logger.info("Backend circuit half-open, letting one call through")
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            self.failure_count = 0
            if self.opened_at is not None:
                logger.info("Backend circuit closed")
                self.opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self.failure_count += 1
            if self.failure_count < self.threshold:
                return
            if self.opened_at is None:
                logger.warning(
                    f"Backend circuit opened after {self.failure_count} failed calls"
                )
            # A failed half-open trial restarts the timeout
            self.opened_at = time.time()

    def reset(self) -> None:
        with self._lock:
            self.failure_count = 0
            self.opened_at = None


@dataclasses.dataclass
class RetryStats:
    """Counters kept across calls of one handler."""

    total_calls: int = 0
    total_retries: int = 0
    total_failures: int = 0
    rate_limited: int = 0


class RetryHandler:
    """
    Runs backend operations with retries.

    Transient failures (HTTP 429, 5xx, dropped connections and timeouts, as
    decided by ErrorClassifier) are retried with exponential backoff and
    jitter. When the backend sends Retry-After the wait is at least that
    long. Anything else is re-raised at once.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2,
        jitter_factor: float = 0.1,
        circuit_breaker_threshold: int = 10,
        circuit_breaker_timeout: float = 60.0,
        retry_condition: Optional[Callable[[Exception], bool]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize retry handler.

        Args:
            max_retries: Retries after the first attempt
            base_delay: Delay before the first retry (seconds)
            max_delay: Upper bound for any single wait (seconds)
            exponential_base: Growth factor of the delay per attempt
            jitter_factor: Random spread applied to the delay (0.0 to 1.0)
            circuit_breaker_threshold: Exhausted calls before the circuit opens
            circuit_breaker_timeout: Seconds before a trial call is allowed
            retry_condition: Overrides the classifier-based retry decision
            sleep: Sleep function, replaced in tests
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter_factor = jitter_factor
        self.retry_condition = retry_condition or self._is_transient
        self.breaker = CircuitBreaker(
            circuit_breaker_threshold, circuit_breaker_timeout
        )
        self.stats = RetryStats()
        self._classifier = ErrorClassifier()
        self._sleep = sleep
        self._lock = threading.Lock()

    def _is_transient(self, exception: Exception) -> bool:
        return self._classifier.classify(exception) == ErrorType.RETRYABLE

    def _calculate_delay(self, attempt: int, retry_after: Optional[float] = None):
        """Backoff for a 0-based attempt, raised to ``retry_after`` if given."""
        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)
        delay += random.uniform(-self.jitter_factor, self.jitter_factor) * delay
        if retry_after is not None:
            delay = max(delay, min(retry_after, self.max_delay))
        return max(0.0, delay)

    def _count(self, **increments: int) -> None:
        with self._lock:
            for name, value in increments.items():
                setattr(self.stats, name, getattr(self.stats, name) + value)

    def execute_with_retry(self, func: Callable, *args, **kwargs) -> Any:
        """
        Call ``func(*args, **kwargs)``, retrying transient failures.

        Raises:
            CircuitBreakerError: If the circuit is open
            RetryExhaustedException: If every attempt failed transiently
            Exception: The original error when it is not transient
        """
        self._count(total_calls=1)
        if not self.breaker.allow():
            raise CircuitBreakerError(
                "Backend unavailable after repeated failures; "
                f"retrying in up to {self.breaker.timeout:.0f}s"
            )

        name = getattr(func, "__name__", repr(func))
        attempt = 0
        while True:
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if not self.retry_condition(e):
                    raise

                retry_after = getattr(e, "retry_after", None)
                if getattr(e, "status_code", None) == 429:
                    self._count(rate_limited=1)

                if attempt >= self.max_retries:
                    logger.warning(f"{name} failed after {attempt + 1} attempts: {e}")
                    self._count(total_retries=attempt, total_failures=1)
                    self.breaker.record_failure()
                    raise RetryExhaustedException(
                        f"Max retries ({self.max_retries}) exceeded. "
                        f"Last error: {type(e).__name__}: {e}",
                        last_exception=e,
                    ) from e

                delay = self._calculate_delay(attempt, retry_after)
                logger.debug(
                    f"Retrying {name} in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{self.max_retries + 1}): {e}"
                )
                self._sleep(delay)
                attempt += 1
                continue

            if attempt:
                logger.info(f"{name} succeeded after {attempt} retries")
                self._count(total_retries=attempt)
            self.breaker.record_success()
            return result

    def get_retry_statistics(self) -> dict:
        """Counters plus the breaker state, for diagnostics output."""
        with self._lock:
            stats = dataclasses.asdict(self.stats)
        stats["circuit_breaker_open"] = self.breaker.is_open
        stats["failure_count"] = self.breaker.failure_count
        return stats

    def reset_circuit_breaker(self):
        """Close the circuit by hand."""
        self.breaker.reset()
        logger.info("Backend circuit manually reset")

    def reset_statistics(self):
        with self._lock:
            self.stats = RetryStats()
