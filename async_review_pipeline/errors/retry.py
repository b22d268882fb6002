"""
Retry execution with backoff and fallback.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
import logging
from typing import Any, NoReturn, TypeVar

from .backoff import BackoffPolicy
from .classifier import ErrorClassifier, default_classifier
from .handlers import ErrorHandler
from .metrics import MetricsCollector
from .models import ErrorContext, ErrorKind, ErrorResolution, ResolutionStrategy
from .typed import ClassifiedError, OperationTimeoutError, attach_classification

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
Sleeper = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryOptions:
    """Per-call retry and fallback options."""

    enable_retry: bool = True
    max_attempts: int = 3
    enable_fallback: bool = True
    fallback_operation: Operation | None = None
    timeout_seconds: float | None = None
    retry_overrides: Mapping[ErrorKind, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate attempt and timeout bounds."""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )

    def allows_retry(self, error: ClassifiedError, attempt_number: int) -> bool:
        """
        Check whether another attempt is permitted after ``error``.

        Overrides can only narrow retryability: a non-retryable error is
        never retried.

        Args:
            error: The classified error of the failed attempt
            attempt_number: The attempt that failed (1-based)

        Returns:
            True if the operation should be attempted again
        """
        if not self.enable_retry:
            return False
        if not self.retry_overrides.get(error.kind, True):
            return False
        return error.should_retry(attempt_number, self.max_attempts)


class RetryExecutor:
    """Runs operations with classified retry, backoff and fallback."""

    def __init__(
        self,
        classifier: ErrorClassifier | None = None,
        backoff: BackoffPolicy | None = None,
        metrics: MetricsCollector | None = None,
        handler: ErrorHandler | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """
        Initialize retry executor.

        Args:
            classifier: Classifier for raw failures
            backoff: Policy computing retry delays
            metrics: Collector receiving error, retry and fallback events
            handler: Error handler choosing a resolution per error
            sleep: Coroutine used to wait between attempts, in seconds
        """
        self.classifier = classifier or default_classifier
        self.backoff = backoff or BackoffPolicy()
        self.metrics = metrics or MetricsCollector()
        self.handler = handler or ErrorHandler(self.backoff)
        self.sleep = sleep

    async def run(
        self,
        operation: Operation,
        context: ErrorContext,
        options: RetryOptions | None = None,
    ) -> T:
        """
        Run an operation, retrying and falling back as its errors allow.

        Args:
            operation: Zero-argument coroutine function to execute
            context: Context of the first attempt
            options: Retry and fallback options

        Returns:
            The operation's result, or the fallback's result

        Raises:
            Exception: The primary operation's own exception, unchanged, when
                retries and fallback are exhausted. Its classified form, with
                the recorded resolution, is attached as ``classified_error``
        """
        options = options or RetryOptions()
        current = context

        while True:
            try:
                result = await self._attempt(operation, current, options.timeout_seconds)
            except Exception as raw:
                error = self.classifier.classify(raw, current)
                self.metrics.record_error(error, current)
                if current.attempt_number > 1:
                    self.metrics.record_failed_retry(current)

                resolution = await self.handler.resolve(error, current)
                if (
                    resolution.strategy == ResolutionStrategy.RETRY
                    and options.allows_retry(error, current.attempt_number)
                ):
                    delay_ms = resolution.retry_after_ms
                    if delay_ms is None:
                        delay_ms = self.backoff.delay(error, current.attempt_number)
                    self.metrics.record_resolution(
                        error.kind, replace(resolution, retry_after_ms=delay_ms)
                    )
                    logger.info(
                        f"Retrying {current.operation} after {error.kind.value} error "
                        f"(attempt {current.attempt_number + 1}/{options.max_attempts}, "
                        f"delay {delay_ms}ms)"
                    )
                    await self.sleep(delay_ms / 1000)
                    current = current.next_attempt()
                    continue

                return await self._fallback_or_raise(error, raw, current, options, resolution)

            if current.attempt_number > 1:
                self.metrics.record_successful_retry(current)
                logger.info(
                    f"{current.operation} succeeded on attempt {current.attempt_number}"
                )
            return result

    async def _attempt(
        self, operation: Operation, context: ErrorContext, timeout: float | None
    ) -> T:
        if timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout)
        except TimeoutError as e:
            raise OperationTimeoutError(
                f"{context.operation} timed out after {timeout}s",
                timeout_ms=int(timeout * 1000),
                operation=context.operation,
                context=context,
            ) from e

    async def _fallback_or_raise(
        self,
        error: ClassifiedError,
        raw: Exception,
        context: ErrorContext,
        options: RetryOptions,
        resolution: ErrorResolution,
    ) -> T:
        has_fallback = options.enable_fallback and options.fallback_operation is not None
        if resolution.strategy == ResolutionStrategy.RETRY:
            # Retries are exhausted or not allowed for this call
            resolution = ErrorResolution(
                strategy=(
                    ResolutionStrategy.FALLBACK if has_fallback else ResolutionStrategy.FAIL
                ),
                message=(
                    f"Falling back after {error.kind.value} error"
                    if has_fallback
                    else error.user_guidance
                ),
            )
        error.resolution = resolution
        self.metrics.record_resolution(error.kind, resolution)

        if not has_fallback:
            _raise_primary(error, raw)

        logger.info(f"Attempting fallback operation for {context.operation}")

        try:
            value = await options.fallback_operation()
        except Exception as fallback_error:
            logger.error(
                f"Fallback operation also failed for {context.operation}: {fallback_error}"
            )
            self.metrics.record_fallback_failure(context)
            _raise_primary(error, raw)

        if value is None:
            logger.warning(f"Fallback for {context.operation} produced no usable result")
            self.metrics.record_fallback_failure(context)
            _raise_primary(error, raw)

        self.metrics.record_fallback_success(context)
        return value


def _raise_primary(error: ClassifiedError, raw: Exception) -> NoReturn:
    attach_classification(raw, error)
    raise raw
