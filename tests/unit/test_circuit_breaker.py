"""
Unit tests for boondsync/common/circuit_breaker.py

Tests the circuit breaker pattern implementation including:
- State transitions (CLOSED -> OPEN -> HALF_OPEN -> CLOSED)
- Failure threshold detection and excluded exceptions
- Recovery timeout behavior
- CircuitOpenError handling
- Explicit rejection of refused calls
- Registry and per-environment BoondManager breakers
"""

import time
from unittest.mock import patch

import pytest

from boondsync.common.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitOpenError,
    CircuitState,
    get_boondmanager_breaker,
    get_circuit_breaker,
    get_circuit_breaker_registry,
    reset_global_registry,
)


class PermissionProblem(Exception):
    pass


def trip(breaker, count=None):
    for _ in range(count or breaker.failure_threshold):
        breaker.record_failure(RuntimeError("503"))


class TestCircuitOpenError:
    """Tests for CircuitOpenError exception."""

    def test_error_message_formatting(self):
        """Should format error message with circuit name and time remaining."""
        error = CircuitOpenError(
            breaker_name="boondmanager_sandbox",
            time_remaining=45.5,
            last_failure="BoondManager API error: 503 - unavailable"
        )

        assert error.breaker_name == "boondmanager_sandbox"
        assert "boondmanager_sandbox" in str(error)
        assert "45.5s" in str(error)
        assert "503" in str(error)

    def test_error_without_last_failure(self):
        error = CircuitOpenError("test_service", 30.0, None)

        assert "unknown" in str(error)


class TestTransitions:
    def test_starts_closed(self):
        breaker = CircuitBreaker("test")

        assert breaker.state == CircuitState.CLOSED
        assert breaker.can_execute() is True

    def test_opens_at_threshold(self):
        breaker = CircuitBreaker("test", failure_threshold=3)

        trip(breaker, 2)
        assert breaker.state == CircuitState.CLOSED

        trip(breaker, 1)
        assert breaker.state == CircuitState.OPEN
        assert breaker.can_execute() is False

    def test_success_resets_failure_count(self):
        breaker = CircuitBreaker("test", failure_threshold=3)

        trip(breaker, 2)
        breaker.record_success()
        trip(breaker, 2)

        assert breaker.state == CircuitState.CLOSED

    def test_half_open_after_recovery_timeout(self):
        breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=30.0)
        trip(breaker)

        with patch("boondsync.common.circuit_breaker.time.time", return_value=time.time() + 31):
            assert breaker.state == CircuitState.HALF_OPEN
            assert breaker.can_execute() is True
            # Only one trial call at a time
            assert breaker.can_execute() is False

    def test_half_open_closes_after_successes(self):
        breaker = CircuitBreaker("test", failure_threshold=1, success_threshold=2, recovery_timeout=0.0)
        trip(breaker)

        for _ in range(2):
            assert breaker.can_execute()
            breaker.record_success()

        assert breaker.state == CircuitState.CLOSED

    def test_half_open_failure_reopens(self):
        breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=0.0)
        trip(breaker)
        assert breaker.state == CircuitState.HALF_OPEN

        breaker.recovery_timeout = 60.0
        breaker.record_failure(RuntimeError("still down"))

        assert breaker.state == CircuitState.OPEN
        assert breaker.get_time_remaining() > 0

    def test_excluded_exceptions_do_not_count(self):
        breaker = CircuitBreaker("test", failure_threshold=1, excluded_exceptions=(PermissionProblem,))

        breaker.record_failure(PermissionProblem("403"))

        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_stats().failed_calls == 0

    def test_reset(self):
        breaker = CircuitBreaker("test", failure_threshold=1)
        trip(breaker)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_stats().total_calls == 0


class TestUsage:
    def test_reject_counts_and_raises(self):
        breaker = CircuitBreaker("test", failure_threshold=1)
        trip(breaker)

        with pytest.raises(CircuitOpenError) as exc_info:
            breaker.reject()

        assert breaker.get_stats().rejected_calls == 1
        assert exc_info.value.breaker_name == "test"
        assert exc_info.value.last_failure == "503"

    def test_to_dict(self):
        breaker = CircuitBreaker("boondmanager_production", failure_threshold=1)
        trip(breaker)

        data = breaker.to_dict()

        assert data["name"] == "boondmanager_production"
        assert data["state"] == "open"
        assert data["last_failure_reason"] == "503"


class TestRegistry:
    def test_get_or_create(self):
        registry = CircuitBreakerRegistry()

        first = registry.get_or_create("a", failure_threshold=2)

        assert registry.get_or_create("a") is first
        assert registry.get("missing") is None
        assert set(registry.get_all_stats()) == {"a"}

    def test_global_registry_reset(self):
        breaker = get_circuit_breaker("x")
        registry = get_circuit_breaker_registry()

        reset_global_registry()

        assert get_circuit_breaker_registry() is not registry
        assert get_circuit_breaker("x") is not breaker

    def test_boondmanager_breakers_per_environment(self):
        production = get_boondmanager_breaker("production")
        sandbox = get_boondmanager_breaker("sandbox")

        assert production is not sandbox
        assert production.name == "boondmanager_production"
        assert production.failure_threshold == 5
        assert production.recovery_timeout == 60.0
