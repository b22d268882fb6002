"""
Tests for retry backoff calculation.
"""

import datetime
import random

import pytest

from async_review_pipeline.errors.backoff import BackoffPolicy, BackoffSettings
from async_review_pipeline.errors.models import ErrorKind
from async_review_pipeline.errors.typed import (
    AuthenticationError,
    LLMProviderError,
    NetworkError,
    OperationTimeoutError,
    RateLimitError,
    RateLimitInfo,
    ServiceUnavailableError,
    UnknownError,
)

NOW = datetime.datetime(2026, 1, 1, 12, 0, tzinfo=datetime.UTC)


def _policy(**kwargs) -> BackoffPolicy:
    return BackoffPolicy(rng=random.Random(7), clock=lambda: NOW, **kwargs)


class TestBackoffSettings:
    """Tests for BackoffSettings validation."""

    @pytest.mark.unit
    def test_defaults(self):
        """Test default schedule values."""
        settings = BackoffSettings()

        assert settings.base_delay_ms == 1000
        assert settings.max_delay_ms == 30000
        assert settings.multiplier == 2.0

    @pytest.mark.unit
    def test_rejects_excessive_jitter(self):
        """Test that jitter is limited to 20%."""
        with pytest.raises(ValueError):
            BackoffSettings(jitter_ratio=0.5)

    @pytest.mark.unit
    def test_rejects_multiplier_below_jitter_bound(self):
        """Test that the multiplier must outgrow jitter."""
        with pytest.raises(ValueError):
            BackoffSettings(multiplier=1.05, jitter_ratio=0.1)

    @pytest.mark.unit
    def test_rejects_negative_delays(self):
        """Test that delays cannot be negative."""
        with pytest.raises(ValueError):
            BackoffSettings(base_delay_ms=-1)


class TestBackoffPolicy:
    """Tests for BackoffPolicy."""

    @pytest.mark.unit
    def test_exponential_growth_without_jitter(self):
        """Test base * multiplier ** (attempt - 1) without jitter."""
        policy = BackoffPolicy.uniform(100, 10000, multiplier=2.0, jitter_ratio=0.0)
        error = UnknownError("x")

        assert [policy.delay(error, attempt) for attempt in (1, 2, 3, 4)] == [
            100,
            200,
            400,
            800,
        ]

    @pytest.mark.unit
    def test_delay_capped_at_maximum(self):
        """Test that delays never exceed the cap."""
        policy = BackoffPolicy.uniform(1000, 5000, jitter_ratio=0.0)

        assert policy.delay(UnknownError("x"), 10) == 5000

    @pytest.mark.unit
    def test_jitter_bounds(self):
        """Test that jitter adds at most the configured ratio."""
        policy = _policy()
        for attempt in range(1, 5):
            delay = policy.base_delay(ErrorKind.UNKNOWN, attempt)
            raw = 1000 * 2 ** (attempt - 1)
            assert raw <= delay <= raw * 1.1

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error", [UnknownError("x"), NetworkError("x"), OperationTimeoutError("x")]
    )
    def test_monotonic_backoff(self, error):
        """Test that later attempts never wait less than earlier ones."""
        policy = _policy()

        for _ in range(50):
            delays = [policy.delay(error, attempt) for attempt in range(1, 12)]
            assert delays == sorted(delays)

    @pytest.mark.unit
    def test_network_uses_kind_settings(self):
        """Test that network errors start from a longer base delay."""
        policy = _policy()
        delay = policy.delay(NetworkError("x"), 1)

        assert 2000 <= delay <= 2400

    @pytest.mark.unit
    def test_non_retryable_returns_zero(self):
        """Test that non-retryable errors are never scheduled."""
        assert _policy().delay(AuthenticationError("x"), 1) == 0

    @pytest.mark.unit
    def test_rate_limit_reset_hint(self):
        """Test that a reset time overrides the exponential schedule."""
        error = RateLimitError("x", reset_time=NOW + datetime.timedelta(seconds=42))

        assert _policy().delay(error, 1) == 42000

    @pytest.mark.unit
    def test_rate_limit_hint_is_capped(self):
        """Test that reset hints are bounded by the kind cap."""
        error = RateLimitError("x", reset_time=NOW + datetime.timedelta(hours=2))

        assert _policy().delay(error, 1) == 300000

    @pytest.mark.unit
    def test_past_hint_never_negative(self):
        """Test that a reset time in the past gives no delay."""
        error = RateLimitError("x", reset_time=NOW - datetime.timedelta(minutes=1))

        assert _policy().delay(error, 3) == 0

    @pytest.mark.unit
    def test_recovery_hint_has_larger_cap(self):
        """Test the service recovery estimate cap."""
        error = ServiceUnavailableError(
            "x", estimated_recovery=NOW + datetime.timedelta(hours=1)
        )

        assert _policy().delay(error, 1) == 600000

    @pytest.mark.unit
    def test_llm_rate_limit_info(self):
        """Test LLM provider rate-limit info with its one minute cap."""
        error = LLMProviderError(
            "x",
            "anthropic",
            status_code=429,
            rate_limit=RateLimitInfo(reset_time=NOW + datetime.timedelta(minutes=5)),
        )

        assert _policy().delay(error, 1) == 60000

    @pytest.mark.unit
    def test_naive_hints_read_as_utc(self):
        """Test that naive reset and recovery times are taken as UTC."""
        naive_now = NOW.replace(tzinfo=None)
        rate_limited = RateLimitError("x", reset_time=naive_now + datetime.timedelta(seconds=42))
        unavailable = ServiceUnavailableError(
            "x", estimated_recovery=naive_now + datetime.timedelta(seconds=90)
        )
        provider = LLMProviderError(
            "x",
            rate_limit=RateLimitInfo(reset_time=naive_now + datetime.timedelta(seconds=30)),
        )

        assert _policy().delay(rate_limited, 1) == 42000
        assert _policy().delay(unavailable, 1) == 90000
        assert _policy().delay(provider, 1) == 30000

    @pytest.mark.unit
    def test_naive_clock(self):
        """Test that a naive clock is compared as UTC."""
        policy = BackoffPolicy(clock=lambda: NOW.replace(tzinfo=None))
        error = RateLimitError("x", reset_time=NOW + datetime.timedelta(seconds=42))

        assert policy.delay(error, 1) == 42000
