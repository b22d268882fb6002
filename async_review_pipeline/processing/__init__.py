"""
Batch file processing.

This module provides mode selection, sequential and parallel processors,
processor decorators and the pipeline orchestrator.
"""

from .decorators import file_processor, with_fallback
from .lifecycle import batch_lifecycle
from .models import BatchSummary, FileStatus, ProcessingResult
from .modes import ModeOverrides, ProcessingMode, ProcessingModeSelector
from .orchestrator import (
    PipelineOptions,
    PipelineOrchestrator,
    PipelineRun,
    ProcessingPlan,
)
from .parallel import ParallelProcessor
from .protocols import (
    BaseObserver,
    ContentReader,
    FileProcessor,
    Notification,
    NotificationType,
    Notifier,
    PathContentReader,
    ProcessingObserver,
)
from .runner import FileRunner
from .sequential import SequentialOptions, SequentialProcessor

__all__ = [
    "BaseObserver",
    "BatchSummary",
    "ContentReader",
    "FileProcessor",
    "FileRunner",
    "FileStatus",
    "ModeOverrides",
    "Notification",
    "NotificationType",
    "Notifier",
    "ParallelProcessor",
    "PathContentReader",
    "PipelineOptions",
    "PipelineOrchestrator",
    "PipelineRun",
    "ProcessingMode",
    "ProcessingModeSelector",
    "ProcessingObserver",
    "ProcessingPlan",
    "ProcessingResult",
    "SequentialOptions",
    "SequentialProcessor",
    "batch_lifecycle",
    "file_processor",
    "with_fallback",
]
