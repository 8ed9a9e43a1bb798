"""
Rate Limiting Module.

Throttles calls to the BoondManager API so bulk imports and
production -> sandbox copies stay under the provider's request limits.
Each BoondManager environment gets its own limiter.

Usage:
    limiter = get_rate_limiter(Provider.BOONDMANAGER_PRODUCTION)

    if not limiter.acquire():  # Waits if rate limit exceeded
        raise RateLimitExceededError(...)
    response = session.get(...)
"""

import os
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class Provider(str, Enum):
    """API providers with rate limits."""
    BOONDMANAGER_PRODUCTION = "boondmanager_production"
    BOONDMANAGER_SANDBOX = "boondmanager_sandbox"


# Default rate limits per provider
DEFAULT_RATE_LIMITS = {
    Provider.BOONDMANAGER_PRODUCTION: {"requests_per_minute": 120, "daily_limit": None},
    Provider.BOONDMANAGER_SANDBOX: {"requests_per_minute": 120, "daily_limit": None},
}


@dataclass
class RateLimitStats:
    """Statistics for rate limiting."""
    total_requests: int = 0
    requests_today: int = 0
    requests_this_minute: int = 0
    waits_count: int = 0
    total_wait_time_seconds: float = 0.0
    last_request_at: Optional[datetime] = None
    daily_reset_at: Optional[datetime] = None


class RateLimitExceededError(Exception):
    """Raised when rate limit is exceeded and waiting is not allowed."""

    def __init__(self, provider: str, limit_type: str, current: int, limit: int):
        self.provider = provider
        self.limit_type = limit_type
        self.current = current
        self.limit = limit
        super().__init__(
            f"Rate limit exceeded for {provider}: {current}/{limit} ({limit_type})"
        )


class RateLimiter:
    """
    Thread-safe rate limiter using a sliding window.

    Tracks requests per minute and optionally per day.
    acquire() waits for the minute window or, with allow_wait=False, raises.
    """

    def __init__(
        self,
        provider: str,
        requests_per_minute: int = 60,
        daily_limit: Optional[int] = None,
        allow_wait: bool = True,
        max_wait_seconds: float = 60.0,
    ):
        """
        Initialize rate limiter.

        Args:
            provider: Provider name for logging/stats
            requests_per_minute: Maximum requests per minute
            daily_limit: Maximum requests per day (None for unlimited)
            allow_wait: If True, wait when limit hit; if False, raise error
            max_wait_seconds: Maximum time to wait before giving up
        """
        self.provider = provider
        self.requests_per_minute = requests_per_minute
        self.daily_limit = daily_limit
        self.allow_wait = allow_wait
        self.max_wait_seconds = max_wait_seconds

        self._minute_window: deque = deque()
        self._lock = threading.Lock()

        self._daily_count = 0
        self._daily_reset_date = None

        self._stats = RateLimitStats()

    def _clean_minute_window(self) -> None:
        """Remove entries older than 1 minute from the sliding window."""
        cutoff = time.time() - 60.0
        while self._minute_window and self._minute_window[0] < cutoff:
            self._minute_window.popleft()

    def _reset_daily_if_needed(self) -> None:
        """Reset daily counter if we're on a new day."""
        today = datetime.utcnow().date()
        if self._daily_reset_date is None or self._daily_reset_date < today:
            self._daily_count = 0
            self._daily_reset_date = today
            self._stats.daily_reset_at = datetime.utcnow()

    def _get_wait_time(self) -> float:
        """Seconds until the oldest request leaves the window (0.0 if no wait needed)."""
        self._clean_minute_window()

        if len(self._minute_window) < self.requests_per_minute:
            return 0.0

        oldest = self._minute_window[0]
        return max(0.0, oldest + 60.0 - time.time())

    def _record_request(self) -> None:
        now = time.time()
        self._minute_window.append(now)
        self._daily_count += 1

        self._stats.total_requests += 1
        self._stats.requests_today = self._daily_count
        self._stats.requests_this_minute = len(self._minute_window)
        self._stats.last_request_at = datetime.utcnow()

    def acquire(self) -> bool:
        """
        Acquire permission for a request (blocking).

        Waits if rate limit is exceeded, up to max_wait_seconds.

        Returns:
            True if acquired, False if timed out

        Raises:
            RateLimitExceededError: If allow_wait is False and limit exceeded
        """
        start_time = time.time()

        while True:
            with self._lock:
                self._reset_daily_if_needed()
                self._clean_minute_window()

                # Daily limit is a hard cap, waiting does not help
                if self.daily_limit and self._daily_count >= self.daily_limit:
                    if not self.allow_wait:
                        raise RateLimitExceededError(
                            self.provider, "daily", self._daily_count, self.daily_limit
                        )
                    return False

                if len(self._minute_window) < self.requests_per_minute:
                    self._record_request()
                    return True

                wait_time = self._get_wait_time()
                current = len(self._minute_window)

            if not self.allow_wait:
                raise RateLimitExceededError(
                    self.provider, "per_minute", current, self.requests_per_minute
                )

            elapsed = time.time() - start_time
            if elapsed + wait_time > self.max_wait_seconds:
                return False

            self._stats.waits_count += 1
            self._stats.total_wait_time_seconds += min(wait_time, 1.0)
            time.sleep(min(wait_time, 1.0))  # Sleep in small increments

    def get_stats(self) -> RateLimitStats:
        """Get rate limiting statistics."""
        with self._lock:
            self._clean_minute_window()
            self._stats.requests_this_minute = len(self._minute_window)
            return RateLimitStats(
                total_requests=self._stats.total_requests,
                requests_today=self._stats.requests_today,
                requests_this_minute=self._stats.requests_this_minute,
                waits_count=self._stats.waits_count,
                total_wait_time_seconds=self._stats.total_wait_time_seconds,
                last_request_at=self._stats.last_request_at,
                daily_reset_at=self._stats.daily_reset_at,
            )

    def get_remaining_daily(self) -> Optional[int]:
        """Get remaining daily requests (None if no daily limit)."""
        if self.daily_limit is None:
            return None
        with self._lock:
            self._reset_daily_if_needed()
            return max(0, self.daily_limit - self._daily_count)

    def reset(self) -> None:
        """Reset all rate limit tracking."""
        with self._lock:
            self._minute_window.clear()
            self._daily_count = 0
            self._daily_reset_date = None
            self._stats = RateLimitStats()

    def to_dict(self) -> Dict[str, Any]:
        """Export limiter state as dictionary."""
        stats = self.get_stats()
        return {
            "provider": self.provider,
            "requests_per_minute": self.requests_per_minute,
            "daily_limit": self.daily_limit,
            "stats": {
                "total_requests": stats.total_requests,
                "requests_today": stats.requests_today,
                "requests_this_minute": stats.requests_this_minute,
                "waits_count": stats.waits_count,
                "total_wait_time_seconds": stats.total_wait_time_seconds,
                "last_request_at": stats.last_request_at.isoformat() if stats.last_request_at else None,
            },
            "remaining_daily": self.get_remaining_daily(),
        }


class RateLimiterRegistry:
    """Registry for managing rate limiters across providers."""

    def __init__(self):
        self._limiters: Dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        provider: str,
        requests_per_minute: Optional[int] = None,
        daily_limit: Optional[int] = None,
        **kwargs,
    ) -> RateLimiter:
        """
        Get existing limiter or create new one for provider.

        Args:
            provider: Provider name
            requests_per_minute: Override default RPM
            daily_limit: Override default daily limit
            **kwargs: Additional RateLimiter arguments

        Returns:
            RateLimiter instance for the provider
        """
        with self._lock:
            if provider not in self._limiters:
                defaults = DEFAULT_RATE_LIMITS.get(
                    provider,
                    {"requests_per_minute": 60, "daily_limit": None}
                )

                self._limiters[provider] = RateLimiter(
                    provider=provider,
                    requests_per_minute=requests_per_minute or defaults["requests_per_minute"],
                    daily_limit=daily_limit if daily_limit is not None else defaults["daily_limit"],
                    **kwargs,
                )

            return self._limiters[provider]

    def get(self, provider: str) -> Optional[RateLimiter]:
        with self._lock:
            return self._limiters.get(provider)

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get stats for all registered limiters."""
        with self._lock:
            return {
                provider: limiter.to_dict()
                for provider, limiter in self._limiters.items()
            }

    def reset_all(self) -> None:
        with self._lock:
            for limiter in self._limiters.values():
                limiter.reset()


# Global registry instance
_global_registry: Optional[RateLimiterRegistry] = None


def get_rate_limiter_registry() -> RateLimiterRegistry:
    """Get or create the global rate limiter registry."""
    global _global_registry
    if _global_registry is None:
        _global_registry = RateLimiterRegistry()
    return _global_registry


def get_rate_limiter(provider: str) -> RateLimiter:
    """
    Get rate limiter for a provider using global registry.

    Reads configuration from environment variables:
    - {PROVIDER}_RATE_LIMIT_PER_MIN: Per-minute limit
    - {PROVIDER}_DAILY_LIMIT: Daily limit (optional)

    Args:
        provider: Provider name (boondmanager_production, boondmanager_sandbox)

    Returns:
        Configured RateLimiter for the provider
    """
    registry = get_rate_limiter_registry()
    provider = Provider(provider).value if provider in Provider._value2member_map_ else str(provider)

    provider_upper = provider.upper()
    rpm = int(os.getenv(f"{provider_upper}_RATE_LIMIT_PER_MIN", "0"))
    daily = os.getenv(f"{provider_upper}_DAILY_LIMIT")
    daily_limit = int(daily) if daily else None

    if rpm == 0:
        defaults = DEFAULT_RATE_LIMITS.get(provider, {})
        rpm = defaults.get("requests_per_minute", 60)
        if daily_limit is None:
            daily_limit = defaults.get("daily_limit")

    return registry.get_or_create(
        provider=provider,
        requests_per_minute=rpm,
        daily_limit=daily_limit,
    )


def reset_global_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _global_registry
    if _global_registry:
        _global_registry.reset_all()
    _global_registry = None
