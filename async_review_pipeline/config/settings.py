"""
Settings management for the analysis pipeline using Pydantic.

This module provides type-safe configuration with environment variable
support. Settings are constructed explicitly and passed down to the
components that need them; there is no global settings instance.
"""

from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from ..errors.backoff import DEFAULT_KIND_SETTINGS, BackoffPolicy, BackoffSettings
from ..errors.retry import RetryOptions
from ..processing.modes import DEFAULT_SEQUENTIAL_THRESHOLD, ModeOverrides
from ..processing.sequential import SequentialOptions


class PipelineSettings(BaseSettings):
    """
    Settings for batch processing, retry and metrics.

    Values are read from ``REVIEW_PIPELINE_*`` environment variables or a
    ``.env`` file.

    Example:
        settings = PipelineSettings(max_concurrency=8)
        orchestrator = PipelineOrchestrator.from_settings(settings)
    """

    model_config = {
        "env_prefix": "REVIEW_PIPELINE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Allow extra .env fields
    }

    # Mode selection
    force_sequential: bool = False
    force_parallel: bool = False
    sequential_threshold: int = Field(default=DEFAULT_SEQUENTIAL_THRESHOLD, ge=0)

    # Sequential halting policy
    continue_on_error: bool = True
    max_errors: int | None = Field(default=None, ge=1)

    # Parallel fan-out
    max_concurrency: int | None = Field(default=None, ge=1)

    # Retry and fallback
    enable_retry: bool = True
    max_retry_attempts: int = Field(default=3, ge=1)
    enable_fallback: bool = True
    base_retry_delay_ms: int = Field(default=1000, ge=0)
    max_retry_delay_ms: int = Field(default=30000, ge=0)
    retry_backoff_multiplier: float = Field(default=2.0, ge=1.25)
    file_timeout_seconds: float | None = Field(default=None, gt=0)

    # Metrics
    metrics_max_events: int = Field(default=1000, ge=1)

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "PipelineSettings":
        if self.max_retry_delay_ms < self.base_retry_delay_ms:
            raise ValueError(
                "max_retry_delay_ms must be greater than or equal to base_retry_delay_ms"
            )
        return self

    def mode_overrides(self) -> ModeOverrides:
        return ModeOverrides(
            force_sequential=self.force_sequential,
            force_parallel=self.force_parallel,
            threshold=self.sequential_threshold,
        )

    def backoff_policy(self) -> BackoffPolicy:
        """Build a backoff policy using the configured schedule as the default."""
        default = BackoffSettings(
            base_delay_ms=self.base_retry_delay_ms,
            max_delay_ms=self.max_retry_delay_ms,
            multiplier=self.retry_backoff_multiplier,
        )
        return BackoffPolicy(default=default, per_kind=dict(DEFAULT_KIND_SETTINGS))

    def retry_options(self) -> RetryOptions:
        return RetryOptions(
            enable_retry=self.enable_retry,
            max_attempts=self.max_retry_attempts,
            enable_fallback=self.enable_fallback,
            timeout_seconds=self.file_timeout_seconds,
        )

    def sequential_options(self) -> SequentialOptions:
        return SequentialOptions(
            continue_on_error=self.continue_on_error,
            max_errors=self.max_errors,
        )


def load_settings(**overrides: Any) -> PipelineSettings:
    """
    Build a fresh settings instance.

    Every call reads the environment again; callers keep and pass the
    returned object instead of calling this repeatedly.

    Args:
        **overrides: Field values taking precedence over the environment

    Returns:
        New PipelineSettings instance

    Example:
        settings = load_settings(force_sequential=True)
    """
    return PipelineSettings(**overrides)
