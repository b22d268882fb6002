"""
Error handler with strategy registry and severity-based logging.
"""

from collections.abc import Mapping
import logging
from typing import Any

from .backoff import BackoffPolicy
from .models import (
    ErrorContext,
    ErrorKind,
    ErrorResolution,
    ErrorSeverity,
    ResolutionStrategy,
)
from .recovery import BackoffRecovery, ErrorStrategy, FailRecovery, ValidationRecovery
from .typed import ClassifiedError

logger = logging.getLogger(__name__)

CRITICAL_ERRORS_LIMIT = 100


def default_strategies(backoff: BackoffPolicy) -> dict[ErrorKind, ErrorStrategy]:
    """
    Build the default strategy for every error kind.

    Args:
        backoff: Policy used to schedule retries

    Returns:
        Mapping of error kind to strategy
    """
    retry = BackoffRecovery(backoff)
    fail = FailRecovery()
    strategies: dict[ErrorKind, ErrorStrategy] = {kind: retry for kind in ErrorKind}
    strategies[ErrorKind.VALIDATION] = ValidationRecovery()
    strategies[ErrorKind.AUTHENTICATION] = fail
    strategies[ErrorKind.CONFIGURATION] = fail
    return strategies


class ErrorHandler:
    """Centralized resolution of classified errors."""

    def __init__(
        self,
        backoff: BackoffPolicy | None = None,
        strategies: Mapping[ErrorKind, ErrorStrategy] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        """
        Initialize error handler.

        Args:
            backoff: Policy used by the default retry strategy
            strategies: Per-kind overrides applied on top of the defaults
            log: Logger receiving error reports; defaults to the module logger
        """
        self.backoff = backoff or BackoffPolicy()
        self.strategies = default_strategies(self.backoff)
        if strategies:
            self.strategies.update(strategies)
        self.logger = log or logger
        self.error_counts: dict[ErrorKind, int] = {}
        self.critical_errors: list[ClassifiedError] = []

    def register_strategy(self, kind: ErrorKind, strategy: ErrorStrategy) -> None:
        """Replace the strategy used for ``kind``."""
        self.logger.debug(f"Registering error strategy for {kind.value}")
        self.strategies[kind] = strategy

    def log_error(self, error: ClassifiedError, context: ErrorContext) -> None:
        """
        Log an error at a level chosen by its severity.

        Args:
            error: The classified error
            context: Context of the failed attempt
        """
        self.error_counts[error.kind] = self.error_counts.get(error.kind, 0) + 1

        where = context.operation
        if context.file_path:
            where = f"{where} [{context.file_path}]"
        text = f"{error.kind.value} error in {where} (attempt {context.attempt_number}): {error.message}"

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(f"Critical {text}")
            self.critical_errors.append(error)
            del self.critical_errors[:-CRITICAL_ERRORS_LIMIT]
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(f"High severity {text}")
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(f"Medium severity {text}")
        else:
            self.logger.info(f"Low severity {text}")

    async def resolve(
        self, error: ClassifiedError, context: ErrorContext
    ) -> ErrorResolution:
        """
        Log an error and ask its strategy for a resolution.

        A strategy that raises is reported and replaced by a fail resolution.

        Args:
            error: The classified error
            context: Context of the failed attempt

        Returns:
            The resolution chosen for the error
        """
        self.log_error(error, context)

        strategy = self.strategies.get(error.kind)
        if strategy is None:
            return ErrorResolution(
                strategy=ResolutionStrategy.FAIL, message=error.user_guidance
            )

        try:
            resolution = await strategy.handle(error, context)
        except Exception as strategy_error:
            self.logger.error(
                f"{error.kind.value} strategy failed for {context.operation}: {strategy_error}"
            )
            return ErrorResolution(
                strategy=ResolutionStrategy.FAIL,
                message=f"Error strategy failed: {strategy_error}",
            )

        if resolution.should_log:
            self.logger.debug(
                f"Resolved {error.kind.value} error with {resolution.strategy.value}: "
                f"{resolution.message}"
            )
        return resolution

    def get_error_summary(self) -> dict[str, Any]:
        """
        Get summary of all errors encountered.

        Returns:
            Dictionary with error summary
        """
        return {
            "total_errors": sum(self.error_counts.values()),
            "error_counts_by_kind": {
                kind.value: count for kind, count in self.error_counts.items()
            },
            "critical_errors": len(self.critical_errors),
            "critical_error_details": [
                {
                    "kind": err.kind.value,
                    "message": err.message,
                    "timestamp": err.timestamp.isoformat(),
                }
                for err in self.critical_errors
            ],
        }
