"""
Unit tests for boondsync/common/rate_limiter.py

Tests the sliding-window limiter used in front of each BoondManager
environment:
- Per-minute and daily limits
- Waiting vs raising when the limit is hit
- Registry and environment-variable configuration
"""

from unittest.mock import patch

import pytest

from boondsync.common.rate_limiter import (
    DEFAULT_RATE_LIMITS,
    Provider,
    RateLimiter,
    RateLimiterRegistry,
    RateLimitExceededError,
    get_rate_limiter,
    get_rate_limiter_registry,
    reset_global_registry,
)


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter("test", requests_per_minute=3, allow_wait=False)

        for _ in range(3):
            assert limiter.acquire() is True

        with pytest.raises(RateLimitExceededError):
            limiter.acquire()

    def test_raises_when_waiting_not_allowed(self):
        limiter = RateLimiter("test", requests_per_minute=1, allow_wait=False)
        limiter.acquire()

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.acquire()

        assert exc_info.value.limit_type == "per_minute"
        assert "1/1" in str(exc_info.value)

    def test_gives_up_after_max_wait(self):
        limiter = RateLimiter("test", requests_per_minute=1, max_wait_seconds=0.0)
        limiter.acquire()

        assert limiter.acquire() is False

    def test_waits_for_window(self):
        limiter = RateLimiter("test", requests_per_minute=1, max_wait_seconds=120.0)
        clock = [1000.0]

        def sleep(seconds):
            clock[0] += 61.0

        with patch("boondsync.common.rate_limiter.time.time", side_effect=lambda: clock[0]), \
                patch("boondsync.common.rate_limiter.time.sleep", side_effect=sleep):
            limiter.acquire()
            assert limiter.acquire() is True

        assert limiter.get_stats().waits_count == 1

    def test_daily_limit(self):
        limiter = RateLimiter("test", requests_per_minute=100, daily_limit=2, allow_wait=False)
        limiter.acquire()
        limiter.acquire()

        assert limiter.get_remaining_daily() == 0
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.acquire()
        assert exc_info.value.limit_type == "daily"

    def test_no_daily_limit(self):
        assert RateLimiter("test").get_remaining_daily() is None

    def test_reset(self):
        limiter = RateLimiter("test", requests_per_minute=1, allow_wait=False)
        limiter.acquire()

        limiter.reset()

        assert limiter.acquire() is True
        assert limiter.get_stats().total_requests == 1

    def test_to_dict(self):
        limiter = RateLimiter("boondmanager_sandbox", requests_per_minute=10)
        limiter.acquire()

        data = limiter.to_dict()

        assert data["provider"] == "boondmanager_sandbox"
        assert data["stats"]["total_requests"] == 1
        assert data["stats"]["last_request_at"] is not None


class TestRegistry:
    def test_get_or_create_is_idempotent(self):
        registry = RateLimiterRegistry()

        first = registry.get_or_create("boondmanager_production")

        assert registry.get_or_create("boondmanager_production") is first
        assert first.requests_per_minute == 120

    def test_unknown_provider_defaults(self):
        limiter = RateLimiterRegistry().get_or_create("other")

        assert limiter.requests_per_minute == 60

    def test_get_all_stats(self):
        registry = RateLimiterRegistry()
        registry.get_or_create("a")
        registry.get_or_create("b")

        assert set(registry.get_all_stats()) == {"a", "b"}


class TestGlobalLimiter:
    def test_defaults_per_environment(self):
        production = get_rate_limiter(Provider.BOONDMANAGER_PRODUCTION)
        sandbox = get_rate_limiter("boondmanager_sandbox")

        assert production is not sandbox
        assert production.requests_per_minute == DEFAULT_RATE_LIMITS[Provider.BOONDMANAGER_PRODUCTION]["requests_per_minute"]

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BOONDMANAGER_SANDBOX_RATE_LIMIT_PER_MIN", "30")
        monkeypatch.setenv("BOONDMANAGER_SANDBOX_DAILY_LIMIT", "1000")

        limiter = get_rate_limiter("boondmanager_sandbox")

        assert limiter.requests_per_minute == 30
        assert limiter.daily_limit == 1000

    def test_reset_global_registry(self):
        registry = get_rate_limiter_registry()

        reset_global_registry()

        assert get_rate_limiter_registry() is not registry
