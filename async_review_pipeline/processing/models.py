"""
Result models for batch file processing.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors.models import ErrorKind
from ..errors.typed import ClassifiedError


class FileStatus(Enum):
    """Lifecycle of one file in a batch."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (FileStatus.SUCCEEDED, FileStatus.FAILED, FileStatus.SKIPPED)


@dataclass
class ProcessingResult:
    """Outcome of processing a single file."""

    file: str
    status: FileStatus
    result: Any = None
    error: ClassifiedError | None = None
    duration_ms: int = 0
    cached: bool = False
    fallback_used: bool = False
    attempts: int = 0

    @property
    def success(self) -> bool:
        return self.status == FileStatus.SUCCEEDED

    @property
    def skipped(self) -> bool:
        return self.status == FileStatus.SKIPPED

    @property
    def resolution_data(self) -> Any:
        """Data attached by the error strategy, such as validation issues."""
        if self.error is None or self.error.resolution is None:
            return None
        return self.error.resolution.data

    @classmethod
    def skipped_file(cls, file: str) -> "ProcessingResult":
        """Build the outcome of a file that was never started."""
        return cls(file=file, status=FileStatus.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "status": self.status.value,
            "success": self.success,
            "error": self.error.to_dict() if self.error else None,
            "duration_ms": self.duration_ms,
            "cached": self.cached,
            "fallback_used": self.fallback_used,
            "attempts": self.attempts,
            "resolution_data": self.resolution_data,
        }


@dataclass
class BatchSummary:
    """Aggregate statistics for a processed batch."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    total_duration_ms: int = 0
    average_duration_ms: float = 0.0
    cache_hits: int = 0
    fallbacks_used: int = 0
    dominant_error_kind: ErrorKind | None = None
    dominant_error_guidance: str | None = None
    errors_by_kind: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        """Percentage of files that succeeded, 0 for an empty batch."""
        return (self.succeeded / self.total) * 100 if self.total else 0.0

    @classmethod
    def from_results(cls, results: list[ProcessingResult]) -> "BatchSummary":
        """
        Summarize per-file outcomes.

        Args:
            results: Outcomes of every file in the batch

        Returns:
            BatchSummary with pass/fail/skip counts and the dominant error
        """
        summary = cls(total=len(results))
        kinds: Counter[ErrorKind] = Counter()
        first_error: dict[ErrorKind, ClassifiedError] = {}

        for outcome in results:
            if outcome.status == FileStatus.SUCCEEDED:
                summary.succeeded += 1
            elif outcome.status == FileStatus.SKIPPED:
                summary.skipped += 1
            else:
                summary.failed += 1

            summary.total_duration_ms += outcome.duration_ms
            summary.cache_hits += int(outcome.cached)
            summary.fallbacks_used += int(outcome.fallback_used)

            if outcome.error is not None:
                kinds[outcome.error.kind] += 1
                first_error.setdefault(outcome.error.kind, outcome.error)

        executed = summary.succeeded + summary.failed
        if executed:
            summary.average_duration_ms = summary.total_duration_ms / executed

        if kinds:
            # Counter keeps insertion order on ties, so the earliest kind wins.
            dominant, _ = kinds.most_common(1)[0]
            summary.dominant_error_kind = dominant
            summary.dominant_error_guidance = first_error[dominant].user_guidance
            summary.errors_by_kind = {kind.value: count for kind, count in kinds.items()}

        return summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "success_rate": self.success_rate,
            "total_duration_ms": self.total_duration_ms,
            "average_duration_ms": self.average_duration_ms,
            "cache_hits": self.cache_hits,
            "fallbacks_used": self.fallbacks_used,
            "dominant_error_kind": (
                self.dominant_error_kind.value if self.dominant_error_kind else None
            ),
            "dominant_error_guidance": self.dominant_error_guidance,
            "errors_by_kind": dict(self.errors_by_kind),
        }
