"""
Unit tests for retry handler with exponential backoff and circuit breaker.
"""

from unittest.mock import Mock, patch

import pytest
import requests.exceptions

from ar_admin.services.errors import SupabaseError
from ar_admin.services.retry_handler import (
    CircuitBreakerError,
    RetryExhaustedException,
    RetryHandler,
)


class TestRetryHandler:
    """Test cases for RetryHandler."""

    @pytest.fixture
    def sleep(self):
        return Mock(name="sleep")

    @pytest.fixture
    def retry_handler(self, sleep):
        """RetryHandler instance with test configuration."""
        return RetryHandler(
            max_retries=3,
            base_delay=0.1,
            max_delay=1.0,
            exponential_base=2,
            jitter_factor=0.0,
            circuit_breaker_threshold=5,
            circuit_breaker_timeout=2.0,
            sleep=sleep,
        )

    def test_initialization_with_defaults(self):
        """Test retry handler initializes with default values."""
        handler = RetryHandler()

        assert handler.max_retries == 3
        assert handler.base_delay == 1.0
        assert handler.max_delay == 30.0
        assert handler.exponential_base == 2
        assert handler.jitter_factor == 0.1
        assert handler.breaker.threshold == 10
        assert handler.breaker.timeout == 60.0

    def test_successful_execution_no_retry(self, retry_handler, sleep):
        """Test successful execution without retries."""
        mock_func = Mock(return_value="success")

        result = retry_handler.execute_with_retry(mock_func, 1, key="value")

        assert result == "success"
        mock_func.assert_called_once_with(1, key="value")
        sleep.assert_not_called()

    def test_retry_on_rate_limit_error(self, retry_handler, sleep):
        """Test retry behavior on rate limit (429) errors."""
        rate_limit = SupabaseError("Too many requests", status_code=429)
        mock_func = Mock(side_effect=[rate_limit, rate_limit, "success"])

        result = retry_handler.execute_with_retry(mock_func)

        assert result == "success"
        assert mock_func.call_count == 3
        assert sleep.call_count == 2

    def test_retry_on_network_error(self, retry_handler, sleep):
        """Test retry behavior on connection failures."""
        mock_func = Mock(
            side_effect=[requests.exceptions.ConnectionError("reset"), "success"]
        )

        assert retry_handler.execute_with_retry(mock_func) == "success"
        assert sleep.call_count == 1

    def test_no_retry_on_client_error(self, retry_handler, sleep):
        """Test no retry on client (4xx) errors except 429."""
        mock_func = Mock(side_effect=SupabaseError("Not found", status_code=404))

        with pytest.raises(SupabaseError):
            retry_handler.execute_with_retry(mock_func)

        mock_func.assert_called_once()
        sleep.assert_not_called()

    def test_exponential_backoff_delays(self, retry_handler, sleep):
        """Test delays double per attempt without jitter."""
        mock_func = Mock(side_effect=SupabaseError("Server error", status_code=500))

        with pytest.raises(RetryExhaustedException):
            retry_handler.execute_with_retry(mock_func)

        delays = [c.args[0] for c in sleep.call_args_list]
        assert delays == pytest.approx([0.1, 0.2, 0.4])

    def test_delay_is_capped_at_max_delay(self, sleep):
        """Test the backoff never exceeds max_delay."""
        handler = RetryHandler(
            base_delay=10, max_delay=15, jitter_factor=0.0, sleep=sleep
        )

        assert handler._calculate_delay(0) == 10
        assert handler._calculate_delay(3) == 15

    def test_jitter_stays_within_bounds(self):
        """Test jitter keeps the delay within the configured factor."""
        handler = RetryHandler(base_delay=1.0, jitter_factor=0.5)

        for _ in range(20):
            assert 0.5 <= handler._calculate_delay(0) <= 1.5

    def test_retry_exhausted_keeps_last_exception(self, retry_handler):
        """Test RetryExhaustedException wraps the final error."""
        error = SupabaseError("Unavailable", status_code=503)
        mock_func = Mock(side_effect=error)

        with pytest.raises(RetryExhaustedException) as exc_info:
            retry_handler.execute_with_retry(mock_func)

        assert exc_info.value.last_exception is error
        assert "Max retries (3) exceeded" in str(exc_info.value)
        assert mock_func.call_count == 4

    def test_custom_retry_condition(self, sleep):
        """Test a custom retry condition overrides classification."""
        handler = RetryHandler(
            max_retries=2,
            jitter_factor=0.0,
            retry_condition=lambda e: isinstance(e, ValueError),
            sleep=sleep,
        )
        mock_func = Mock(side_effect=[ValueError("flaky"), "ok"])

        assert handler.execute_with_retry(mock_func) == "ok"

        with pytest.raises(KeyError):
            handler.execute_with_retry(Mock(side_effect=KeyError("x")))

    def test_circuit_breaker_opens_after_threshold(self, sleep):
        """Test the circuit opens after consecutive exhausted calls."""
        handler = RetryHandler(
            max_retries=0,
            circuit_breaker_threshold=2,
            circuit_breaker_timeout=60.0,
            sleep=sleep,
        )
        failing = Mock(side_effect=SupabaseError("down", status_code=503))

        for _ in range(2):
            with pytest.raises(RetryExhaustedException):
                handler.execute_with_retry(failing)

        with pytest.raises(CircuitBreakerError):
            handler.execute_with_retry(Mock(return_value="never"))

        assert handler.get_retry_statistics()["circuit_breaker_open"] is True

    def test_circuit_breaker_half_open_after_timeout(self, sleep):
        """Test a call is let through once the timeout has passed."""
        handler = RetryHandler(
            max_retries=0,
            circuit_breaker_threshold=1,
            circuit_breaker_timeout=30.0,
            sleep=sleep,
        )

        with patch("ar_admin.services.retry_handler.time.time", return_value=1000.0):
            with pytest.raises(RetryExhaustedException):
                handler.execute_with_retry(
                    Mock(side_effect=SupabaseError("down", status_code=500))
                )

        with patch("ar_admin.services.retry_handler.time.time", return_value=1031.0):
            assert handler.execute_with_retry(Mock(return_value="ok")) == "ok"

        stats = handler.get_retry_statistics()
        assert stats["circuit_breaker_open"] is False
        assert stats["failure_count"] == 0

    def test_reset_circuit_breaker(self, sleep):
        """Test manually resetting an open circuit."""
        handler = RetryHandler(max_retries=0, circuit_breaker_threshold=1, sleep=sleep)
        with pytest.raises(RetryExhaustedException):
            handler.execute_with_retry(Mock(side_effect=SupabaseError("x", 502)))

        handler.reset_circuit_breaker()

        assert handler.execute_with_retry(Mock(return_value=1)) == 1

    def test_statistics(self, retry_handler):
        """Test call, retry and failure counters."""
        flaky = SupabaseError("Server error", status_code=500)
        retry_handler.execute_with_retry(Mock(side_effect=[flaky, "ok"]))
        with pytest.raises(RetryExhaustedException):
            retry_handler.execute_with_retry(Mock(side_effect=flaky))

        stats = retry_handler.get_retry_statistics()
        assert stats["total_calls"] == 2
        assert stats["total_retries"] == 4
        assert stats["total_failures"] == 1
        assert stats["rate_limited"] == 0

        retry_handler.reset_statistics()
        stats = retry_handler.get_retry_statistics()
        assert stats["total_calls"] == 0
        assert stats["total_retries"] == 0

    def test_waits_at_least_retry_after(self, retry_handler, sleep):
        """Test a Retry-After from the backend lengthens the backoff."""
        throttled = SupabaseError("Slow down", status_code=429, retry_after=0.75)
        mock_func = Mock(side_effect=[throttled, "ok"])

        assert retry_handler.execute_with_retry(mock_func) == "ok"

        sleep.assert_called_once_with(0.75)
        assert retry_handler.get_retry_statistics()["rate_limited"] == 1

    def test_retry_after_is_capped_at_max_delay(self, retry_handler, sleep):
        """Test an oversized Retry-After never exceeds max_delay."""
        throttled = SupabaseError("Slow down", status_code=429, retry_after=600)

        retry_handler.execute_with_retry(Mock(side_effect=[throttled, "ok"]))

        sleep.assert_called_once_with(1.0)

    def test_failed_half_open_trial_reopens_circuit(self, sleep):
        """Test a failing trial call keeps the circuit open."""
        handler = RetryHandler(
            max_retries=0,
            circuit_breaker_threshold=1,
            circuit_breaker_timeout=30.0,
            sleep=sleep,
        )
        down = Mock(side_effect=SupabaseError("down", status_code=503))

        with patch("ar_admin.services.retry_handler.time.time", return_value=1000.0):
            with pytest.raises(RetryExhaustedException):
                handler.execute_with_retry(down)

        with patch("ar_admin.services.retry_handler.time.time", return_value=1031.0):
            with pytest.raises(RetryExhaustedException):
                handler.execute_with_retry(down)
            with pytest.raises(CircuitBreakerError):
                handler.execute_with_retry(Mock(return_value="never"))
