"""
Error classification.

Maps any failure (exception, string, mapping, arbitrary object or ``None``)
onto exactly one ``ClassifiedError`` variant. Classification is deterministic
and total: ``classify`` never raises.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .models import ErrorContext, ErrorKind
from .typed import (
    CLASSIFIED_ERROR_ATTR,
    APIRequestError,
    AuthenticationError,
    ClassifiedError,
    ConfigurationError,
    FieldError,
    FileAccessError,
    GitOperationError,
    InputValidationError,
    NetworkError,
    OperationTimeoutError,
    PermissionDeniedError,
    RateLimitError,
    ServiceUnavailableError,
    UnknownError,
)

logger = logging.getLogger(__name__)

ErrorBuilder = Callable[[str, ErrorContext | None], ClassifiedError]


@dataclass(frozen=True)
class ClassificationRule:
    """A keyword rule: if any pattern occurs in the lower-cased message, build."""

    kind: ErrorKind
    patterns: tuple[str, ...]
    build: ErrorBuilder

    def matches(self, lowered_message: str) -> bool:
        return any(pattern in lowered_message for pattern in self.patterns)


# First match wins. Timeout runs before network so "network timeout" is a timeout.
DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        ErrorKind.TIMEOUT,
        ("timeout", "timed out", "etimedout"),
        lambda msg, ctx: OperationTimeoutError(msg, context=ctx),
    ),
    ClassificationRule(
        ErrorKind.NETWORK,
        ("network", "connection", "econnrefused", "econnreset", "enotfound"),
        lambda msg, ctx: NetworkError(msg, context=ctx),
    ),
    ClassificationRule(
        ErrorKind.AUTHENTICATION,
        ("auth", "unauthorized", "forbidden"),
        lambda msg, ctx: AuthenticationError(msg, context=ctx),
    ),
    ClassificationRule(
        ErrorKind.PERMISSION,
        ("permission", "access denied"),
        lambda msg, ctx: PermissionDeniedError(msg, context=ctx),
    ),
    ClassificationRule(
        ErrorKind.RATE_LIMIT,
        ("rate limit", "ratelimit", "too many requests", "429"),
        lambda msg, ctx: RateLimitError(msg, context=ctx),
    ),
    ClassificationRule(
        ErrorKind.FILE_ACCESS,
        ("file", "enoent", "eacces"),
        lambda msg, ctx: FileAccessError(
            msg,
            file_path=(ctx.file_path if ctx and ctx.file_path else "unknown"),
            context=ctx,
        ),
    ),
    ClassificationRule(
        ErrorKind.SERVICE_UNAVAILABLE,
        ("service unavailable", "server error", "bad gateway", "502", "503", "504"),
        lambda msg, ctx: ServiceUnavailableError(msg, context=ctx),
    ),
    ClassificationRule(
        ErrorKind.GIT_OPERATION,
        ("git",),
        lambda msg, ctx: GitOperationError(msg, context=ctx),
    ),
    ClassificationRule(
        ErrorKind.CONFIGURATION,
        ("config",),
        lambda msg, ctx: ConfigurationError(msg, context=ctx),
    ),
)


def try_parse_structured_validation_error(raw: Any) -> list[FieldError] | None:
    """
    Convert a structured validation failure into field errors.

    This is the only place that inspects the shape of validation errors.
    Supported inputs are ``pydantic.ValidationError`` and mappings carrying an
    ``issues`` list of ``{"path": [...], "message": ...}`` entries.

    Args:
        raw: Any failure value

    Returns:
        List of field errors, or None if ``raw`` is not a structured
        validation error
    """
    if isinstance(raw, PydanticValidationError):
        field_errors = []
        for issue in raw.errors():
            location = ".".join(str(part) for part in issue.get("loc", ()))
            value = issue.get("input")
            field_errors.append(
                FieldError(
                    field=location or "root",
                    message=issue.get("msg", "invalid value"),
                    expected_type=issue.get("type", "unknown"),
                    actual_type=type(value).__name__,
                    value=value,
                )
            )
        return field_errors

    if isinstance(raw, Mapping) and isinstance(raw.get("issues"), Sequence):
        field_errors = []
        for issue in raw["issues"]:
            if not isinstance(issue, Mapping):
                continue
            path = issue.get("path") or ()
            if isinstance(path, str):
                location = path
            else:
                location = ".".join(str(part) for part in path)
            value = issue.get("received")
            field_errors.append(
                FieldError(
                    field=location or "root",
                    message=str(issue.get("message", "invalid value")),
                    expected_type=str(issue.get("expected", "unknown")),
                    actual_type=type(value).__name__ if value is not None else "unknown",
                    value=value,
                )
            )
        return field_errors

    return None


def _validation_error(
    field_error: FieldError,
    field_errors: tuple[FieldError, ...],
    context: ErrorContext | None,
) -> InputValidationError:
    return InputValidationError(
        f"Validation failed for field '{field_error.field}': {field_error.message}",
        field_errors=field_errors,
        context=context,
    )


class ErrorClassifier:
    """Maps arbitrary failures onto typed errors using ordered keyword rules."""

    def __init__(self, rules: Sequence[ClassificationRule] = DEFAULT_RULES) -> None:
        """
        Initialize the classifier.

        Args:
            rules: Ordered keyword rules; the first matching rule wins
        """
        self.rules = tuple(rules)

    def classify(self, raw: Any, context: ErrorContext | None = None) -> ClassifiedError:
        """
        Classify a failure into a single typed error.

        Args:
            raw: Exception, string, mapping, arbitrary object or None
            context: Optional context attached to the built error

        Returns:
            The classified error; an existing ClassifiedError is returned unchanged
        """
        try:
            return self._classify(raw, context)
        except Exception as e:
            logger.error(f"Error classification failed, falling back to unknown: {e}")
            return UnknownError(
                f"Unclassifiable {type(raw).__name__}", original=raw, context=context
            )

    def classify_all(
        self, raw: Any, context: ErrorContext | None = None
    ) -> list[ClassifiedError]:
        """
        Classify a failure, expanding structured validation errors per field.

        Args:
            raw: Any failure value
            context: Optional context attached to each built error

        Returns:
            One error per offending field for structured validation failures,
            otherwise a single-element list
        """
        if isinstance(raw, ClassifiedError):
            return [raw]
        field_errors = try_parse_structured_validation_error(raw)
        if field_errors:
            all_fields = tuple(field_errors)
            return [_validation_error(fe, all_fields, context) for fe in field_errors]
        return [self.classify(raw, context)]

    def classify_message(
        self, message: str, context: ErrorContext | None = None, original: Any = None
    ) -> ClassifiedError:
        """Apply the keyword rules to a message."""
        lowered = message.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return rule.build(message, context)
        return UnknownError(message, original=original, context=context)

    def _classify(self, raw: Any, context: ErrorContext | None) -> ClassifiedError:
        if isinstance(raw, ClassifiedError):
            return raw
        attached = getattr(raw, CLASSIFIED_ERROR_ATTR, None)
        if isinstance(attached, ClassifiedError):
            return attached

        field_errors = try_parse_structured_validation_error(raw)
        if field_errors is not None:
            if not field_errors:
                return InputValidationError("Validation failed", context=context)
            return _validation_error(field_errors[0], tuple(field_errors), context)

        if isinstance(raw, BaseException):
            typed = self._classify_builtin(raw, context)
            if typed is not None:
                return typed
            return self.classify_message(_describe(raw), context, original=raw)

        if isinstance(raw, str):
            return self.classify_message(raw, context, original=raw)

        if isinstance(raw, Mapping) and raw.get("message"):
            return self.classify_message(str(raw["message"]), context, original=raw)

        if raw is None:
            return UnknownError("An unknown error occurred", original=None, context=context)

        return UnknownError("Unknown error occurred", original=raw, context=context)

    def _classify_builtin(
        self, raw: BaseException, context: ErrorContext | None
    ) -> ClassifiedError | None:
        message = _describe(raw)
        if isinstance(raw, TimeoutError):
            return OperationTimeoutError(
                message,
                operation=context.operation if context else "unknown",
                context=context,
            )
        if isinstance(raw, ConnectionError):
            return NetworkError(message, context=context)
        if isinstance(raw, (FileNotFoundError, IsADirectoryError, NotADirectoryError)):
            return FileAccessError(
                message,
                file_path=str(raw.filename) if raw.filename else _path_of(context),
                operation="access",
                context=context,
            )
        if isinstance(raw, PermissionError):
            return PermissionDeniedError(
                message,
                resource=str(raw.filename) if raw.filename else _path_of(context),
                context=context,
            )
        return None

    def classify_http_status(
        self,
        status_code: int,
        url: str,
        *,
        reason: str = "",
        method: str = "unknown",
        response_body: str | None = None,
        context: ErrorContext | None = None,
    ) -> APIRequestError:
        """
        Build an API error from an HTTP response status.

        Args:
            status_code: HTTP status code
            url: Requested URL
            reason: HTTP reason phrase
            method: HTTP method
            response_body: Optional response body for diagnostics
            context: Optional error context

        Returns:
            APIRequestError whose severity and retryability follow the status
        """
        message = f"HTTP {status_code} {reason}".strip()
        return APIRequestError(
            message,
            endpoint=url,
            method=method,
            status_code=status_code,
            response_body=response_body,
            context=context,
        )


def _describe(raw: Any) -> str:
    if raw is None:
        return "An unknown error occurred"
    try:
        text = str(raw)
    except Exception:
        return type(raw).__name__
    return text if text else type(raw).__name__


def _path_of(context: ErrorContext | None) -> str:
    if context is not None and context.file_path:
        return context.file_path
    return "unknown"


default_classifier = ErrorClassifier()


def classify(raw: Any, context: ErrorContext | None = None) -> ClassifiedError:
    """Classify ``raw`` with the default rules."""
    return default_classifier.classify(raw, context)
