"""Retry backoff calculation for classified errors."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import datetime
import random

from .models import ErrorKind, utc_now
from .typed import (
    ClassifiedError,
    LLMProviderError,
    RateLimitError,
    ServiceUnavailableError,
    as_utc,
)


@dataclass(frozen=True)
class BackoffSettings:
    """Exponential backoff parameters for one error kind."""

    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    multiplier: float = 2.0
    jitter_ratio: float = 0.1

    def __post_init__(self) -> None:
        """Keep jittered delays monotonic across attempts."""
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("Backoff delays must be non-negative")
        if not 0.0 <= self.jitter_ratio <= 0.2:
            raise ValueError(f"jitter_ratio must be within [0, 0.2], got {self.jitter_ratio}")
        if self.multiplier < 1.0 + self.jitter_ratio:
            raise ValueError(
                f"multiplier {self.multiplier} must be at least 1 + jitter_ratio "
                f"({1.0 + self.jitter_ratio})"
            )


DEFAULT_KIND_SETTINGS: Mapping[ErrorKind, BackoffSettings] = {
    ErrorKind.NETWORK: BackoffSettings(
        base_delay_ms=2000, max_delay_ms=60000, jitter_ratio=0.2
    ),
    ErrorKind.SERVICE_UNAVAILABLE: BackoffSettings(
        base_delay_ms=5000, max_delay_ms=300000, jitter_ratio=0.0
    ),
}

# Upper bounds for provider-supplied wait hints
HINT_CAPS_MS: Mapping[ErrorKind, int] = {
    ErrorKind.LLM_PROVIDER: 60000,
    ErrorKind.RATE_LIMIT: 300000,
    ErrorKind.SERVICE_UNAVAILABLE: 600000,
}


@dataclass
class BackoffPolicy:
    """
    Compute retry delays per error kind and attempt.

    Delays grow as ``base * multiplier ** (attempt - 1)`` plus random jitter,
    capped at the kind's maximum. Rate-limit reset times and service recovery
    estimates override the exponential schedule, bounded by a per-kind cap.
    """

    default: BackoffSettings = field(default_factory=BackoffSettings)
    per_kind: Mapping[ErrorKind, BackoffSettings] = field(
        default_factory=lambda: dict(DEFAULT_KIND_SETTINGS)
    )
    hint_caps_ms: Mapping[ErrorKind, int] = field(
        default_factory=lambda: dict(HINT_CAPS_MS)
    )
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], datetime.datetime] = utc_now

    @classmethod
    def uniform(
        cls,
        base_delay_ms: int,
        max_delay_ms: int,
        multiplier: float = 2.0,
        jitter_ratio: float = 0.1,
    ) -> "BackoffPolicy":
        """Build a policy that applies the same schedule to every kind."""
        settings = BackoffSettings(
            base_delay_ms=base_delay_ms,
            max_delay_ms=max_delay_ms,
            multiplier=multiplier,
            jitter_ratio=jitter_ratio,
        )
        return cls(default=settings, per_kind={})

    def settings_for(self, kind: ErrorKind) -> BackoffSettings:
        return self.per_kind.get(kind, self.default)

    def base_delay(self, kind: ErrorKind, attempt: int) -> int:
        """
        Calculate the exponential delay for a kind, ignoring hints.

        Args:
            kind: Error kind
            attempt: Attempt number that failed (1-based)

        Returns:
            Delay in milliseconds with jitter applied, capped at the maximum
        """
        settings = self.settings_for(kind)
        exponent = max(0, attempt - 1)
        raw = settings.base_delay_ms * (settings.multiplier**exponent)
        jittered = raw + raw * settings.jitter_ratio * self.rng.random()
        return int(min(jittered, settings.max_delay_ms))

    def delay(self, error: ClassifiedError, attempt: int) -> int:
        """
        Calculate the delay before retrying after ``error``.

        Args:
            error: The classified error
            attempt: Attempt number that failed (1-based)

        Returns:
            Delay in milliseconds; 0 for non-retryable errors
        """
        if not error.retryable:
            return 0

        hint = self._hint_for(error)
        if hint is not None:
            cap = self.hint_caps_ms.get(error.kind, self.settings_for(error.kind).max_delay_ms)
            wait_ms = (as_utc(hint) - as_utc(self.clock())).total_seconds() * 1000
            return int(max(0, min(wait_ms, cap)))

        return self.base_delay(error.kind, attempt)

    @staticmethod
    def _hint_for(error: ClassifiedError) -> datetime.datetime | None:
        if isinstance(error, RateLimitError):
            return error.reset_time
        if isinstance(error, ServiceUnavailableError):
            return error.estimated_recovery
        if isinstance(error, LLMProviderError) and error.rate_limit is not None:
            return error.rate_limit.reset_time
        return None
