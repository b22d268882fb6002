"""
Recovery strategies for error handling.
"""

import logging
from typing import Protocol, runtime_checkable

from .backoff import BackoffPolicy
from .models import ErrorContext, ErrorResolution, ResolutionStrategy
from .typed import ClassifiedError, InputValidationError

logger = logging.getLogger(__name__)


@runtime_checkable
class ErrorStrategy(Protocol):
    """Decides how one classified error should be resolved."""

    async def handle(
        self, error: ClassifiedError, context: ErrorContext
    ) -> ErrorResolution:
        """
        Produce a resolution for an error.

        Args:
            error: The classified error
            context: Context of the failed attempt

        Returns:
            The chosen resolution
        """
        ...


class ValidationRecovery:
    """Recovery strategy: carry field issues forward, otherwise fall back."""

    async def handle(
        self, error: ClassifiedError, context: ErrorContext
    ) -> ErrorResolution:
        logger.debug(f"Applying validation strategy for {context.operation}")

        if isinstance(error, InputValidationError) and error.field_errors:
            issues = [
                {"field": fe.field, "message": fe.message} for fe in error.field_errors
            ]
            fields = ", ".join(issue["field"] for issue in issues)
            return ErrorResolution(
                strategy=ResolutionStrategy.TRANSFORM,
                message=f"Validation failed for fields: {fields}",
                data={"validation_issues": issues},
            )

        return ErrorResolution(
            strategy=ResolutionStrategy.FALLBACK,
            message="Validation failed, using fallback processing",
            data=None,
        )


class BackoffRecovery:
    """Recovery strategy: retry retryable errors after a backoff delay."""

    def __init__(self, backoff: BackoffPolicy) -> None:
        self.backoff = backoff

    async def handle(
        self, error: ClassifiedError, context: ErrorContext
    ) -> ErrorResolution:
        if not error.retryable:
            return ErrorResolution(
                strategy=ResolutionStrategy.FAIL,
                message=error.user_guidance,
            )

        delay_ms = self.backoff.delay(error, context.attempt_number)
        return ErrorResolution(
            strategy=ResolutionStrategy.RETRY,
            message=f"{error.kind.value} error, will retry in {delay_ms}ms",
            retry_after_ms=delay_ms,
        )


class FailRecovery:
    """Recovery strategy: surface the error unchanged."""

    async def handle(
        self, error: ClassifiedError, context: ErrorContext  # noqa: ARG002
    ) -> ErrorResolution:
        return ErrorResolution(
            strategy=ResolutionStrategy.FAIL,
            message=error.user_guidance,
        )
