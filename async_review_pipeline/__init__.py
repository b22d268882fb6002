"""
Async Review Pipeline - resilient multi-file analysis for asyncio applications.

This library drives a per-file analysis function over a batch of files. It
chooses sequential or parallel execution, classifies every failure into a
typed error, retries with backoff, falls back when the primary analysis is
exhausted, deduplicates work through a content-addressed cache and reports
per-file outcomes with recovery metrics.

Core Features:
- PipelineOrchestrator for running a batch end to end
- @file_processor decorator and with_fallback composition
- Typed error taxonomy with a deterministic classifier
- RetryExecutor with per-kind backoff and fallback
- Environment-driven settings via pydantic-settings

Example:
    from async_review_pipeline import PipelineOrchestrator, file_processor, load_settings

    @file_processor
    async def review(path, content):
        return {"path": path, "lines": len(content.splitlines())}

    orchestrator = PipelineOrchestrator.from_settings(load_settings())
    run = await orchestrator.run(["a.py", "b.py"], review)
    print(run.summary.succeeded, run.summary.failed)
"""

__version__ = "0.1.0"

from .cache import AnalysisCache, build_cache_key
from .config import PipelineSettings, load_settings
from .errors import (
    BackoffPolicy,
    ClassifiedError,
    ErrorClassifier,
    ErrorContext,
    ErrorKind,
    ErrorSeverity,
    MetricsCollector,
    RetryExecutor,
    RetryOptions,
    classify,
)
from .processing import (
    BatchSummary,
    FileStatus,
    ParallelProcessor,
    PipelineOptions,
    PipelineOrchestrator,
    PipelineRun,
    ProcessingMode,
    ProcessingModeSelector,
    ProcessingResult,
    SequentialProcessor,
    file_processor,
    with_fallback,
)

__all__ = [
    "AnalysisCache",
    "BackoffPolicy",
    "BatchSummary",
    "ClassifiedError",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorKind",
    "ErrorSeverity",
    "FileStatus",
    "MetricsCollector",
    "ParallelProcessor",
    "PipelineOptions",
    "PipelineOrchestrator",
    "PipelineRun",
    "PipelineSettings",
    "ProcessingMode",
    "ProcessingModeSelector",
    "ProcessingResult",
    "RetryExecutor",
    "RetryOptions",
    "SequentialProcessor",
    "build_cache_key",
    "classify",
    "file_processor",
    "load_settings",
    "with_fallback",
]
