"""
Error handling framework for the analysis pipeline.

This module provides the typed error taxonomy, classification, backoff,
retry with fallback and error metrics.
"""

from .backoff import BackoffPolicy, BackoffSettings
from .classifier import (
    ClassificationRule,
    ErrorClassifier,
    classify,
    try_parse_structured_validation_error,
)
from .handlers import ErrorHandler
from .metrics import MetricsCollector
from .models import (
    ErrorContext,
    ErrorEvent,
    ErrorKind,
    ErrorMetrics,
    ErrorResolution,
    ErrorSeverity,
    ResolutionStrategy,
)
from .recovery import ErrorStrategy
from .retry import RetryExecutor, RetryOptions
from .typed import (
    APIRequestError,
    AuthenticationError,
    ClassifiedError,
    ConfigurationError,
    FieldError,
    FileAccessError,
    GitOperationError,
    InputValidationError,
    LLMProviderError,
    NetworkError,
    OperationTimeoutError,
    PermissionDeniedError,
    RateLimitError,
    RateLimitInfo,
    ServiceUnavailableError,
    UnknownError,
)

__all__ = [
    "APIRequestError",
    "AuthenticationError",
    "BackoffPolicy",
    "BackoffSettings",
    "ClassificationRule",
    "ClassifiedError",
    "ConfigurationError",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorEvent",
    "ErrorHandler",
    "ErrorKind",
    "ErrorMetrics",
    "ErrorResolution",
    "ErrorSeverity",
    "ErrorStrategy",
    "FieldError",
    "FileAccessError",
    "GitOperationError",
    "InputValidationError",
    "LLMProviderError",
    "MetricsCollector",
    "NetworkError",
    "OperationTimeoutError",
    "PermissionDeniedError",
    "RateLimitError",
    "RateLimitInfo",
    "ResolutionStrategy",
    "RetryExecutor",
    "RetryOptions",
    "ServiceUnavailableError",
    "UnknownError",
    "classify",
    "try_parse_structured_validation_error",
]
