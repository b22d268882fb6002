"""
Error models and data classes for error handling.
"""

from dataclasses import dataclass, field, replace
import datetime
from enum import Enum
from typing import Any


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorKind(Enum):
    """Error kinds for classification."""

    VALIDATION = "validation"
    LLM_PROVIDER = "llm_provider"
    API_REQUEST = "api_request"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    RATE_LIMIT = "rate_limit"
    FILE_ACCESS = "file_access"
    TIMEOUT = "timeout"
    SERVICE_UNAVAILABLE = "service_unavailable"
    GIT_OPERATION = "git_operation"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ResolutionStrategy(Enum):
    """How an error was (or will be) resolved."""

    RETRY = "retry"
    FALLBACK = "fallback"
    FAIL = "fail"
    TRANSFORM = "transform"


def utc_now() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.UTC)


@dataclass(frozen=True)
class ErrorContext:
    """Where and when a failure happened.

    Contexts are immutable; retries derive a new context through
    ``next_attempt`` so the attempt counter only ever moves forward.
    """

    operation: str
    file_path: str | None = None
    attempt_number: int = 1
    timestamp: datetime.datetime = field(default_factory=utc_now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Reject attempt numbers below one."""
        if self.attempt_number < 1:
            raise ValueError(
                f"attempt_number must be >= 1, got {self.attempt_number}"
            )

    def next_attempt(self) -> "ErrorContext":
        """Return a copy for the following attempt, stamped with a fresh time."""
        return replace(
            self,
            attempt_number=self.attempt_number + 1,
            timestamp=utc_now(),
            metadata=dict(self.metadata),
        )


@dataclass(frozen=True)
class ErrorResolution:
    """Outcome produced by an error strategy for one error."""

    strategy: ResolutionStrategy
    message: str
    should_log: bool = True
    retry_after_ms: int | None = None
    data: Any = None


@dataclass
class ErrorEvent:
    """A single recorded error, kept in the metrics ring buffer."""

    event_id: str
    kind: ErrorKind
    severity: ErrorSeverity
    operation: str
    timestamp: datetime.datetime
    retry_count: int = 0
    resolved: bool = False
    resolution_strategy: ResolutionStrategy | None = None
    total_duration_ms: int = 0
    file_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "operation": self.operation,
            "timestamp": self.timestamp.isoformat(),
            "retry_count": self.retry_count,
            "resolved": self.resolved,
            "resolution_strategy": (
                self.resolution_strategy.value if self.resolution_strategy else None
            ),
            "total_duration_ms": self.total_duration_ms,
            "file_path": self.file_path,
        }


@dataclass
class ErrorMetrics:
    """Aggregate error counters."""

    total_errors: int = 0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    errors_by_operation: dict[str, int] = field(default_factory=dict)
    retry_attempts: int = 0
    successful_retries: int = 0
    failed_retries: int = 0
    fallbacks_used: int = 0
    fallback_successes: int = 0
    fallback_failures: int = 0
    average_retry_delay_ms: float = 0.0
    error_recovery_rate: float = 0.0
    last_reset_time: datetime.datetime = field(default_factory=utc_now)

    def copy(self) -> "ErrorMetrics":
        """Return a copy that shares no mutable state with this instance."""
        return replace(
            self,
            errors_by_type=dict(self.errors_by_type),
            errors_by_operation=dict(self.errors_by_operation),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_errors": self.total_errors,
            "errors_by_type": dict(self.errors_by_type),
            "errors_by_operation": dict(self.errors_by_operation),
            "retry_attempts": self.retry_attempts,
            "successful_retries": self.successful_retries,
            "failed_retries": self.failed_retries,
            "fallbacks_used": self.fallbacks_used,
            "fallback_successes": self.fallback_successes,
            "fallback_failures": self.fallback_failures,
            "average_retry_delay_ms": self.average_retry_delay_ms,
            "error_recovery_rate": self.error_recovery_rate,
            "last_reset_time": self.last_reset_time.isoformat(),
        }
