"""
Circuit breaker for outbound BoondManager calls.

After repeated transient failures against one environment the breaker
opens and later calls fail fast with CircuitOpenError, instead of each
record of a bulk import waiting out its own timeouts and retries.

Usage:
    breaker = get_boondmanager_breaker("sandbox")

    if not breaker.can_execute():
        breaker.reject()
    try:
        response = session.get(url)
    except requests.ConnectionError as e:
        breaker.record_failure(e)
        raise
    breaker.record_success()
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Requests flow normally
    OPEN = "open"            # Requests rejected until recovery_timeout elapses
    HALF_OPEN = "half_open"  # A few trial requests allowed


class CircuitOpenError(Exception):
    """Raised when circuit is open and calls are rejected."""

    def __init__(
        self,
        breaker_name: str,
        time_remaining: float,
        last_failure: Optional[str] = None
    ):
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        self.last_failure = last_failure
        super().__init__(
            f"Circuit '{breaker_name}' is OPEN. "
            f"Retry in {time_remaining:.1f}s. "
            f"Last failure: {last_failure or 'unknown'}"
        )


@dataclass
class CircuitBreakerStats:
    """Point-in-time counters for a breaker."""
    state: CircuitState
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    last_failure_at: Optional[datetime] = None
    last_failure_reason: Optional[str] = None


class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Transitions:
    - CLOSED -> OPEN: failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: recovery_timeout seconds after the last failure
    - HALF_OPEN -> CLOSED: success_threshold successful trial calls
    - HALF_OPEN -> OPEN: any failed trial call

    Exceptions listed in excluded_exceptions (e.g. permission errors,
    which no amount of waiting fixes) are not counted as failures.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        success_threshold: int = 2,
        recovery_timeout: float = 30.0,
        half_open_max_calls: int = 1,
        excluded_exceptions: tuple = (),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self.excluded_exceptions = excluded_exceptions

        self._state = CircuitState.CLOSED
        self._lock = threading.RLock()
        self._failure_count = 0
        self._success_count = 0
        self._total_calls = 0
        self._successful_calls = 0
        self._failed_calls = 0
        self._rejected_calls = 0
        self._half_open_calls = 0
        self._last_failure_time: Optional[float] = None
        self._last_failure_reason: Optional[str] = None

    @property
    def state(self) -> CircuitState:
        """Current state; an expired OPEN circuit moves to HALF_OPEN on read."""
        with self._lock:
            if self._state == CircuitState.OPEN:
                elapsed = time.time() - (self._last_failure_time or 0)
                if elapsed >= self.recovery_timeout:
                    self._transition_to(CircuitState.HALF_OPEN)
            return self._state

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        if old_state == new_state:
            return

        self._state = new_state
        if new_state == CircuitState.CLOSED:
            self._failure_count = 0
        elif new_state == CircuitState.HALF_OPEN:
            self._success_count = 0
        self._half_open_calls = 0

        logger.info(
            f"Circuit '{self.name}' state changed: {old_state.value} -> {new_state.value}"
        )

    def can_execute(self) -> bool:
        """Return True when a call may proceed (reserves a trial slot in HALF_OPEN)."""
        with self._lock:
            current_state = self.state

            if current_state == CircuitState.CLOSED:
                return True
            if current_state == CircuitState.OPEN:
                return False

            if self._half_open_calls < self.half_open_max_calls:
                self._half_open_calls += 1
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            self._total_calls += 1
            self._successful_calls += 1
            self._failure_count = 0

            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                self._half_open_calls = max(0, self._half_open_calls - 1)
                if self._success_count >= self.success_threshold:
                    self._transition_to(CircuitState.CLOSED)

    def record_failure(self, exception: Optional[BaseException] = None) -> None:
        """Count a failed call unless the exception type is excluded."""
        if exception is not None and isinstance(exception, self.excluded_exceptions):
            # Still release the trial slot so HALF_OPEN does not stall
            with self._lock:
                if self._state == CircuitState.HALF_OPEN:
                    self._half_open_calls = max(0, self._half_open_calls - 1)
            return

        with self._lock:
            self._total_calls += 1
            self._failed_calls += 1
            self._failure_count += 1
            self._last_failure_time = time.time()
            self._last_failure_reason = str(exception) if exception else "Unknown"

            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
                logger.warning(f"Circuit '{self.name}' reopened due to failure: {exception}")
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                logger.warning(
                    f"Circuit '{self.name}' opening: "
                    f"{self._failure_count} consecutive failures"
                )
                self._transition_to(CircuitState.OPEN)

    def record_rejection(self) -> None:
        with self._lock:
            self._rejected_calls += 1

    def get_time_remaining(self) -> float:
        """Seconds left before an OPEN circuit lets a trial call through."""
        with self._lock:
            if self._state != CircuitState.OPEN:
                return 0.0
            elapsed = time.time() - (self._last_failure_time or 0)
            return max(0.0, self.recovery_timeout - elapsed)

    def get_stats(self) -> CircuitBreakerStats:
        with self._lock:
            return CircuitBreakerStats(
                state=self._state,
                total_calls=self._total_calls,
                successful_calls=self._successful_calls,
                failed_calls=self._failed_calls,
                rejected_calls=self._rejected_calls,
                consecutive_failures=self._failure_count,
                consecutive_successes=self._success_count,
                last_failure_at=(
                    datetime.fromtimestamp(self._last_failure_time)
                    if self._last_failure_time else None
                ),
                last_failure_reason=self._last_failure_reason,
            )

    def reset(self) -> None:
        """Return to a fresh CLOSED state."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._total_calls = 0
            self._successful_calls = 0
            self._failed_calls = 0
            self._rejected_calls = 0
            self._half_open_calls = 0
            self._last_failure_time = None
            self._last_failure_reason = None

    def to_dict(self) -> Dict[str, Any]:
        stats = self.get_stats()
        return {
            "name": self.name,
            "state": stats.state.value,
            "total_calls": stats.total_calls,
            "failed_calls": stats.failed_calls,
            "rejected_calls": stats.rejected_calls,
            "consecutive_failures": stats.consecutive_failures,
            "last_failure_reason": stats.last_failure_reason,
            "time_remaining_seconds": self.get_time_remaining(),
        }

    def reject(self) -> None:
        """Count a refused call and raise CircuitOpenError."""
        self.record_rejection()
        raise CircuitOpenError(
            self.name,
            self.get_time_remaining(),
            self._last_failure_reason
        )


# =============================================================================
# Registry
# =============================================================================

class CircuitBreakerRegistry:
    """Keeps one breaker per name for the lifetime of the process."""

    def __init__(self):
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get_or_create(self, name: str, **kwargs) -> CircuitBreaker:
        with self._lock:
            if name not in self._breakers:
                self._breakers[name] = CircuitBreaker(name=name, **kwargs)
            return self._breakers[name]

    def get(self, name: str) -> Optional[CircuitBreaker]:
        with self._lock:
            return self._breakers.get(name)

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {name: breaker.to_dict() for name, breaker in self._breakers.items()}

    def reset_all(self) -> None:
        with self._lock:
            for breaker in self._breakers.values():
                breaker.reset()


_global_registry: Optional[CircuitBreakerRegistry] = None


def get_circuit_breaker_registry() -> CircuitBreakerRegistry:
    global _global_registry
    if _global_registry is None:
        _global_registry = CircuitBreakerRegistry()
    return _global_registry


def get_circuit_breaker(name: str, **kwargs) -> CircuitBreaker:
    """Get or create a named breaker from the global registry."""
    return get_circuit_breaker_registry().get_or_create(name, **kwargs)


def reset_global_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _global_registry
    if _global_registry:
        _global_registry.reset_all()
    _global_registry = None


def get_boondmanager_breaker(
    environment: str,
    excluded_exceptions: tuple = (),
) -> CircuitBreaker:
    """
    Breaker for one BoondManager environment.

    Production and sandbox are separate instances, so one being down
    must not block the other.
    """
    return get_circuit_breaker(
        f"boondmanager_{environment}",
        failure_threshold=5,
        recovery_timeout=60.0,
        half_open_max_calls=1,
        excluded_exceptions=excluded_exceptions,
    )
