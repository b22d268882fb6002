"""
Error metrics collection.

Tracks error occurrences, retries, fallbacks and the resulting recovery rate.
The collector is shared between concurrent file pipelines, so every mutation
happens under a single lock.
"""

from collections import Counter, deque
import itertools
import json
import logging
import threading
import time
from typing import Any

from .models import (
    ErrorContext,
    ErrorEvent,
    ErrorKind,
    ErrorMetrics,
    ErrorResolution,
    ResolutionStrategy,
    utc_now,
)
from .typed import ClassifiedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 1000
RECENT_EVENTS_LIMIT = 50
TOP_ENTRIES_LIMIT = 10


class MetricsCollector:
    """Thread-safe collector for error and recovery metrics."""

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        """
        Initialize metrics collector.

        Args:
            max_events: Size of the ring buffer of recent error events
        """
        if max_events < 1:
            raise ValueError(f"max_events must be >= 1, got {max_events}")
        self.max_events = max_events
        self._lock = threading.Lock()
        self._metrics = ErrorMetrics()
        self._events: deque[ErrorEvent] = deque(maxlen=max_events)
        # Retries that reported a delay; the average delay is taken over these
        self._delayed_retries = 0
        self._event_ids = itertools.count(1)

    def record_error(self, error: ClassifiedError, context: ErrorContext) -> ErrorEvent:
        """
        Record an error occurrence.

        Args:
            error: The classified error
            context: Context of the failed attempt

        Returns:
            The event appended to the ring buffer
        """
        with self._lock:
            self._metrics.total_errors += 1
            kind_key = error.kind.value
            self._metrics.errors_by_type[kind_key] = (
                self._metrics.errors_by_type.get(kind_key, 0) + 1
            )
            self._metrics.errors_by_operation[context.operation] = (
                self._metrics.errors_by_operation.get(context.operation, 0) + 1
            )

            event = ErrorEvent(
                event_id=f"ERR_{int(time.time())}_{next(self._event_ids)}",
                kind=error.kind,
                severity=error.severity,
                operation=context.operation,
                timestamp=context.timestamp,
                retry_count=context.attempt_number - 1,
                file_path=context.file_path,
            )
            self._events.append(event)
            total = self._metrics.total_errors

        logger.debug(
            f"Recorded {kind_key} error for {context.operation} (total errors: {total})"
        )
        return event

    def record_resolution(self, kind: ErrorKind, resolution: ErrorResolution) -> None:
        """
        Record how an error was resolved.

        Args:
            kind: Kind of the resolved error
            resolution: Resolution chosen for it
        """
        with self._lock:
            event = self._latest_unresolved(kind)
            if event is not None:
                event.resolution_strategy = resolution.strategy
                event.resolved = resolution.strategy != ResolutionStrategy.FAIL
                elapsed = (utc_now() - event.timestamp).total_seconds() * 1000
                event.total_duration_ms = max(0, int(elapsed))

            if resolution.strategy == ResolutionStrategy.RETRY:
                self._metrics.retry_attempts += 1
                if resolution.retry_after_ms is not None:
                    self._delayed_retries += 1
                    self._update_average_retry_delay(resolution.retry_after_ms)

        logger.debug(f"Recorded {resolution.strategy.value} resolution for {kind.value} error")

    def record_successful_retry(self, context: ErrorContext) -> None:
        with self._lock:
            self._metrics.successful_retries += 1
            self._recalculate_recovery_rate()
        logger.debug(
            f"Recorded successful retry for {context.operation} "
            f"(attempt {context.attempt_number})"
        )

    def record_failed_retry(self, context: ErrorContext) -> None:
        with self._lock:
            self._metrics.failed_retries += 1
            self._recalculate_recovery_rate()
        logger.debug(
            f"Recorded failed retry for {context.operation} "
            f"(attempt {context.attempt_number})"
        )

    def record_fallback_success(self, context: ErrorContext) -> None:
        with self._lock:
            self._metrics.fallbacks_used += 1
            self._metrics.fallback_successes += 1
            self._recalculate_recovery_rate()
        logger.debug(f"Recorded successful fallback for {context.operation}")

    def record_fallback_failure(self, context: ErrorContext) -> None:
        with self._lock:
            self._metrics.fallbacks_used += 1
            self._metrics.fallback_failures += 1
            self._recalculate_recovery_rate()
        logger.debug(f"Recorded failed fallback for {context.operation}")

    def get_metrics(self) -> ErrorMetrics:
        """Return a copy of the current metrics."""
        with self._lock:
            return self._metrics.copy()

    def get_recent_events(self, limit: int = RECENT_EVENTS_LIMIT) -> list[ErrorEvent]:
        """Return up to ``limit`` most recent events, newest first."""
        with self._lock:
            events = list(self._events)[-limit:]
        return sorted(events, key=lambda e: e.timestamp, reverse=True)

    def get_detailed_stats(self) -> dict[str, Any]:
        """
        Get a breakdown of the collected errors.

        Returns:
            Dictionary with metrics, top error kinds and operations, recent
            events and recovery rate per kind
        """
        with self._lock:
            metrics = self._metrics.copy()
            events = list(self._events)

        total = metrics.total_errors

        def _ranked(counts: dict[str, int], label: str) -> list[dict[str, Any]]:
            ranked = Counter(counts).most_common(TOP_ENTRIES_LIMIT)
            return [
                {
                    label: name,
                    "count": count,
                    "percentage": (count / total) * 100 if total else 0.0,
                }
                for name, count in ranked
            ]

        by_kind: dict[str, list[ErrorEvent]] = {}
        for event in events:
            by_kind.setdefault(event.kind.value, []).append(event)
        recovery_by_kind = {
            kind: round(sum(1 for e in kind_events if e.resolved) / len(kind_events) * 100, 2)
            for kind, kind_events in by_kind.items()
        }

        recent = sorted(events[-RECENT_EVENTS_LIMIT:], key=lambda e: e.timestamp, reverse=True)

        return {
            "metrics": metrics,
            "top_error_types": _ranked(metrics.errors_by_type, "type"),
            "top_operations": _ranked(metrics.errors_by_operation, "operation"),
            "recent_events": recent,
            "recovery_rate_by_type": recovery_by_kind,
        }

    def export_metrics(self) -> str:
        """Serialize metrics and retained events to a JSON string."""
        with self._lock:
            payload = {
                "metrics": self._metrics.to_dict(),
                "events": [event.to_dict() for event in self._events],
                "export_time": utc_now().isoformat(),
            }
        return json.dumps(payload, indent=2)

    def reset(self) -> None:
        """Clear all counters and events and stamp the reset time."""
        with self._lock:
            self._metrics = ErrorMetrics(last_reset_time=utc_now())
            self._events.clear()
            self._delayed_retries = 0
        logger.info("Error metrics reset")

    def _latest_unresolved(self, kind: ErrorKind) -> ErrorEvent | None:
        for event in reversed(self._events):
            if event.kind == kind and event.resolution_strategy is None:
                return event
        return None

    def _update_average_retry_delay(self, delay_ms: int) -> None:
        count = self._delayed_retries
        previous_total = self._metrics.average_retry_delay_ms * (count - 1)
        self._metrics.average_retry_delay_ms = (previous_total + delay_ms) / count

    def _recalculate_recovery_rate(self) -> None:
        m = self._metrics
        recovered = m.successful_retries + m.fallback_successes
        attempts = recovered + m.failed_retries + m.fallback_failures
        m.error_recovery_rate = (recovered / attempts) * 100 if attempts else 0.0
