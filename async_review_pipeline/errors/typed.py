"""
Typed error taxonomy.

Every failure that crosses the pipeline is expressed as one of the
``ClassifiedError`` subclasses below. Each variant fixes its kind, and derives
severity, retryability and user guidance from its own details at construction
time. Those values are exposed read-only and never change afterwards.
"""

from dataclasses import dataclass
import datetime
import logging
import math
from typing import Any, ClassVar

from .models import ErrorContext, ErrorKind, ErrorResolution, ErrorSeverity, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldError:
    """One offending field of a structured validation failure."""

    field: str
    message: str
    expected_type: str = "unknown"
    actual_type: str = "unknown"
    value: Any = None


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate-limit details reported by a provider."""

    limit: int | None = None
    remaining: int | None = None
    reset_time: datetime.datetime | None = None

    def __post_init__(self) -> None:
        if self.reset_time is not None:
            object.__setattr__(self, "reset_time", as_utc(self.reset_time))


def as_utc(moment: datetime.datetime) -> datetime.datetime:
    """Return ``moment`` as an aware datetime, reading naive values as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=datetime.UTC)
    return moment


def _minutes_until(moment: datetime.datetime) -> int:
    seconds = (as_utc(moment) - utc_now()).total_seconds()
    return max(0, math.ceil(seconds / 60))


class ClassifiedError(Exception):
    """Base class for all classified pipeline errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.UNKNOWN

    def __init__(self, message: str, context: ErrorContext | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context
        self.timestamp = utc_now()
        # Set by the retry executor once the error is resolved
        self.resolution: ErrorResolution | None = None
        self._severity = self._derive_severity()
        self._retryable = self._derive_retryable()
        self._user_guidance = self._derive_guidance()

    @property
    def severity(self) -> ErrorSeverity:
        return self._severity

    @property
    def retryable(self) -> bool:
        return self._retryable

    @property
    def user_guidance(self) -> str:
        return self._user_guidance

    def _derive_severity(self) -> ErrorSeverity:
        return ErrorSeverity.MEDIUM

    def _derive_retryable(self) -> bool:
        return True

    def _derive_guidance(self) -> str:
        return (
            "An unexpected error occurred. Please try again or contact support "
            "if the issue persists."
        )

    def should_retry(self, attempt_number: int, max_attempts: int) -> bool:
        """
        Determine if another attempt is allowed after ``attempt_number``.

        Args:
            attempt_number: The attempt that just failed (1-based)
            max_attempts: Total attempts permitted

        Returns:
            True if the error is retryable and attempts remain
        """
        return self.retryable and attempt_number < max_attempts

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for reports and logs."""
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "message": self.message,
            "user_guidance": self.user_guidance,
            "operation": self.context.operation if self.context else None,
            "file_path": self.context.file_path if self.context else None,
            "attempt_number": self.context.attempt_number if self.context else None,
            "timestamp": self.timestamp.isoformat(),
            "resolution": self.resolution.strategy.value if self.resolution else None,
            "resolution_data": self.resolution.data if self.resolution else None,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


# Attribute under which a raw exception carries its classified form
CLASSIFIED_ERROR_ATTR = "classified_error"


def attach_classification(raw: BaseException, error: ClassifiedError) -> None:
    """
    Record the classified form of ``raw`` on the exception itself.

    The raw exception keeps propagating unchanged; the classifier returns the
    attached error when it sees ``raw`` again.

    Args:
        raw: The exception raised by an operation
        error: Its classified form
    """
    if raw is error:
        return
    try:
        setattr(raw, CLASSIFIED_ERROR_ATTR, error)
    except AttributeError:
        logger.debug(f"Cannot attach classification to {type(raw).__name__}")

class InputValidationError(ClassifiedError):
    """Input failed schema or field validation."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field_errors: tuple[FieldError, ...] = (),
        context: ErrorContext | None = None,
    ) -> None:
        self.field_errors = tuple(field_errors)
        super().__init__(message, context)

    def _derive_retryable(self) -> bool:
        return False

    def _derive_guidance(self) -> str:
        if not self.field_errors:
            return "The input failed validation. Please check its structure."
        first = self.field_errors[0]
        return (
            f"Please check the {first.field} field. "
            f"Expected {first.expected_type} but got {first.actual_type}."
        )


class LLMProviderError(ClassifiedError):
    """The LLM provider rejected or failed a request."""

    kind = ErrorKind.LLM_PROVIDER

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        *,
        model: str | None = None,
        status_code: int | None = None,
        request_id: str | None = None,
        rate_limit: RateLimitInfo | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.request_id = request_id
        self.rate_limit = rate_limit
        super().__init__(message, context)

    def _derive_severity(self) -> ErrorSeverity:
        if self.status_code is not None and self.status_code >= 500:
            return ErrorSeverity.HIGH
        return ErrorSeverity.MEDIUM

    def _derive_retryable(self) -> bool:
        return self.status_code not in (401, 403)

    def _derive_guidance(self) -> str:
        if self.status_code == 401:
            return "Please check your API key configuration."
        if self.status_code == 429:
            return "Rate limit exceeded. Please wait before retrying."
        if self.status_code is not None and self.status_code >= 500:
            return "The LLM service is temporarily unavailable. Please try again later."
        return "There was an issue with the LLM provider. Please check your configuration."


class APIRequestError(ClassifiedError):
    """An upstream HTTP API call failed."""

    kind = ErrorKind.API_REQUEST

    def __init__(
        self,
        message: str,
        endpoint: str = "unknown",
        *,
        method: str = "unknown",
        status_code: int | None = None,
        response_body: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.method = method
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, context)

    def _derive_severity(self) -> ErrorSeverity:
        if self.status_code is None:
            return ErrorSeverity.MEDIUM
        if self.status_code >= 500:
            return ErrorSeverity.HIGH
        if self.status_code >= 400:
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.LOW

    def _derive_retryable(self) -> bool:
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code in (408, 429)

    def _derive_guidance(self) -> str:
        status = self.status_code
        if status == 401:
            return "Authentication failed. Please check your credentials."
        if status == 403:
            return "Access denied. Please check your permissions."
        if status == 404:
            return f"The requested resource at {self.endpoint} was not found."
        if status == 429:
            return "Too many requests. Please wait before retrying."
        if status is not None and status >= 500:
            return "The server is experiencing issues. Please try again later."
        return "An API error occurred. Please check your request and try again."


class NetworkError(ClassifiedError):
    """A connection could not be established or was dropped."""

    kind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str,
        host: str | None = None,
        port: int | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.host = host
        self.port = port
        super().__init__(message, context)

    def _derive_severity(self) -> ErrorSeverity:
        return ErrorSeverity.HIGH

    def _derive_guidance(self) -> str:
        return (
            "Network connection failed. Please check your internet connection "
            "and try again."
        )


class AuthenticationError(ClassifiedError):
    """Credentials were missing, invalid or rejected."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(
        self,
        message: str,
        service: str = "unknown",
        context: ErrorContext | None = None,
    ) -> None:
        self.service = service
        super().__init__(message, context)

    def _derive_severity(self) -> ErrorSeverity:
        return ErrorSeverity.HIGH

    def _derive_retryable(self) -> bool:
        return False

    def _derive_guidance(self) -> str:
        return (
            f"Authentication failed for {self.service}. "
            "Please check your credentials and configuration."
        )


class PermissionDeniedError(ClassifiedError):
    """The caller lacks a permission required by the operation."""

    kind = ErrorKind.PERMISSION

    def __init__(
        self,
        message: str,
        resource: str = "unknown",
        required_permission: str = "unknown",
        context: ErrorContext | None = None,
    ) -> None:
        self.resource = resource
        self.required_permission = required_permission
        super().__init__(message, context)

    def _derive_retryable(self) -> bool:
        return False

    def _derive_guidance(self) -> str:
        return (
            f"Access denied to {self.resource}. "
            f"Required permission: {self.required_permission}."
        )


class RateLimitError(ClassifiedError):
    """The remote side is throttling requests."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str,
        reset_time: datetime.datetime | None = None,
        limit: int | None = None,
        remaining: int | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.reset_time = as_utc(reset_time) if reset_time is not None else None
        self.limit = limit
        self.remaining = remaining
        super().__init__(message, context)

    def _derive_guidance(self) -> str:
        if self.reset_time is not None:
            minutes = _minutes_until(self.reset_time)
            return f"Rate limit exceeded. Please wait {minutes} minutes before retrying."
        if self.remaining == 0:
            return "Rate limit exceeded. Please wait before making more requests."
        return "Rate limit exceeded. Please reduce the frequency of your requests."


class FileAccessError(ClassifiedError):
    """A file could not be read, written or found."""

    kind = ErrorKind.FILE_ACCESS

    def __init__(
        self,
        message: str,
        file_path: str = "unknown",
        operation: str = "access",
        context: ErrorContext | None = None,
    ) -> None:
        self.file_path = file_path
        self.operation = operation
        super().__init__(message, context)

    def _derive_retryable(self) -> bool:
        return self.operation in ("read", "access")

    def _derive_guidance(self) -> str:
        path = self.file_path
        guidance = {
            "read": f"Cannot read file '{path}'. Please check if the file exists "
            "and you have read permissions.",
            "write": f"Cannot write to file '{path}'. Please check if you have "
            "write permissions.",
            "delete": f"Cannot delete file '{path}'. Please check if the file "
            "exists and you have delete permissions.",
            "create": f"Cannot create file '{path}'. Please check if the directory "
            "exists and you have write permissions.",
            "access": f"Cannot access file '{path}'. Please check if the file "
            "exists and you have the required permissions.",
        }
        return guidance.get(self.operation, f"File operation failed for '{path}'.")


class OperationTimeoutError(ClassifiedError):
    """An operation exceeded its time limit."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str,
        timeout_ms: int = 0,
        operation: str = "unknown",
        context: ErrorContext | None = None,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.operation = operation
        super().__init__(message, context)

    def _derive_guidance(self) -> str:
        return (
            f"Operation '{self.operation}' timed out after {self.timeout_ms}ms. "
            "You may want to increase the timeout or try again."
        )


class ServiceUnavailableError(ClassifiedError):
    """A dependency is down or overloaded."""

    kind = ErrorKind.SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        service_name: str = "unknown",
        estimated_recovery: datetime.datetime | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.service_name = service_name
        self.estimated_recovery = (
            as_utc(estimated_recovery) if estimated_recovery is not None else None
        )
        super().__init__(message, context)

    def _derive_severity(self) -> ErrorSeverity:
        return ErrorSeverity.HIGH

    def _derive_guidance(self) -> str:
        if self.estimated_recovery is not None:
            minutes = _minutes_until(self.estimated_recovery)
            return (
                f"{self.service_name} is temporarily unavailable. "
                f"Estimated recovery time: {minutes} minutes."
            )
        return f"{self.service_name} is temporarily unavailable. Please try again later."


RETRYABLE_GIT_OPERATIONS = frozenset({"fetch", "pull", "clone", "status"})


class GitOperationError(ClassifiedError):
    """A git command failed."""

    kind = ErrorKind.GIT_OPERATION

    def __init__(
        self,
        message: str,
        repository: str = "unknown",
        operation: str = "unknown",
        branch: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.repository = repository
        self.operation = operation
        self.branch = branch
        super().__init__(message, context)

    def _derive_retryable(self) -> bool:
        return self.operation.lower() in RETRYABLE_GIT_OPERATIONS

    def _derive_guidance(self) -> str:
        operation = self.operation.lower()
        if operation in ("fetch", "pull"):
            return (
                f"Failed to {operation} from {self.repository}. Please check your "
                "network connection and repository access."
            )
        if operation == "push":
            return (
                f"Failed to push to {self.repository}. Please check for conflicts "
                "and ensure you have push permissions."
            )
        if operation == "commit":
            return (
                "Failed to create commit. Please check that you have changes to "
                "commit and proper git configuration."
            )
        if operation == "checkout":
            return (
                f"Failed to checkout {self.branch or 'branch'}. Please check that the "
                "branch exists and there are no uncommitted changes."
            )
        return f"Git operation '{self.operation}' failed for repository {self.repository}."


class ConfigurationError(ClassifiedError):
    """Configuration is missing or invalid."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        config_key: str = "unknown",
        expected_value: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.config_key = config_key
        self.expected_value = expected_value
        super().__init__(message, context)

    def _derive_severity(self) -> ErrorSeverity:
        return ErrorSeverity.HIGH

    def _derive_retryable(self) -> bool:
        return False

    def _derive_guidance(self) -> str:
        if self.expected_value:
            return (
                f"Configuration error: '{self.config_key}' should be "
                f"{self.expected_value}. Please check your configuration file."
            )
        return (
            f"Configuration error: '{self.config_key}' is missing or invalid. "
            "Please check your configuration file."
        )


class UnknownError(ClassifiedError):
    """Anything that matched no other rule."""

    kind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        original: Any = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.original = original
        super().__init__(message, context)
