"""
Pipeline orchestration.

Selects a processing mode for a batch, delegates to the matching processor
and attaches cache and error metrics to the returned run.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any

from ..cache.analysis import AnalysisCache, CacheStats
from ..errors.metrics import MetricsCollector
from ..errors.models import ErrorMetrics
from ..errors.retry import RetryExecutor, RetryOptions, Sleeper
from .lifecycle import batch_lifecycle
from .models import BatchSummary, ProcessingResult
from .modes import ModeOverrides, ProcessingMode, ProcessingModeSelector
from .parallel import ParallelProcessor
from .protocols import (
    ContentReader,
    FileProcessor,
    Notifier,
    PathContentReader,
    ProcessingObserver,
    ProgressCallback,
)
from .runner import FileRunner
from .sequential import SequentialOptions, SequentialProcessor

if TYPE_CHECKING:
    from ..config.settings import PipelineSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOptions:
    """Per-run options."""

    mode: ModeOverrides = field(default_factory=ModeOverrides)
    sequential: SequentialOptions = field(default_factory=SequentialOptions)
    observer: ProcessingObserver | None = None
    on_progress: ProgressCallback | None = None


@dataclass
class PipelineRun:
    """Results of one batch with observability snapshots."""

    results: list[ProcessingResult]
    mode: ProcessingMode
    cache_stats: CacheStats
    metrics: ErrorMetrics
    summary: BatchSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "results": [outcome.to_dict() for outcome in self.results],
            "cache_stats": self.cache_stats.to_dict(),
            "metrics": self.metrics.to_dict(),
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class FilePlan:
    file: str
    readable: bool


@dataclass(frozen=True)
class ProcessingPlan:
    """What a run would do, computed without invoking the processor."""

    mode: ProcessingMode
    concurrency: int
    files: list[FilePlan]

    @property
    def unreadable(self) -> list[str]:
        return [entry.file for entry in self.files if not entry.readable]


class PipelineOrchestrator:
    """Runs batches of files through the resilient processing pipeline."""

    def __init__(
        self,
        executor: RetryExecutor | None = None,
        retry_options: RetryOptions | None = None,
        cache: AnalysisCache | None = None,
        reader: ContentReader | None = None,
        notifier: Notifier | None = None,
        fallback: FileProcessor | None = None,
        max_concurrency: int | None = None,
        default_options: PipelineOptions | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            executor: Retry executor shared by both processors
            retry_options: Retry and fallback options for processor calls
            cache: Analysis cache used in parallel mode
            reader: Content reader; defaults to reading local files
            notifier: Optional sink for batch notifications
            fallback: Optional processor used when the primary is exhausted
            max_concurrency: Parallel worker limit
            default_options: Options used when ``run`` receives none
        """
        self.executor = executor or RetryExecutor()
        self.retry_options = retry_options or RetryOptions()
        self.cache = cache or AnalysisCache()
        self.reader = reader or PathContentReader()
        self.notifier = notifier
        self.default_options = default_options or PipelineOptions()

        self.sequential = SequentialProcessor(
            FileRunner(
                self.executor,
                self.retry_options,
                reader=self.reader,
                fallback=fallback,
            ),
            self.default_options.sequential,
        )
        self.parallel = ParallelProcessor(
            FileRunner(
                self.executor,
                self.retry_options,
                reader=self.reader,
                cache=self.cache,
                fallback=fallback,
            ),
            max_concurrency=max_concurrency,
        )

    @classmethod
    def from_settings(
        cls,
        settings: "PipelineSettings",
        *,
        reader: ContentReader | None = None,
        notifier: Notifier | None = None,
        fallback: FileProcessor | None = None,
        sleep: Sleeper | None = None,
    ) -> "PipelineOrchestrator":
        """
        Build an orchestrator from settings.

        Args:
            settings: Pipeline settings
            reader: Content reader; defaults to reading local files
            notifier: Optional sink for batch notifications
            fallback: Optional fallback processor
            sleep: Override for the retry sleep coroutine

        Returns:
            Configured orchestrator
        """
        executor_kwargs: dict[str, Any] = {
            "backoff": settings.backoff_policy(),
            "metrics": MetricsCollector(max_events=settings.metrics_max_events),
        }
        if sleep is not None:
            executor_kwargs["sleep"] = sleep

        return cls(
            executor=RetryExecutor(**executor_kwargs),
            retry_options=settings.retry_options(),
            reader=reader,
            notifier=notifier,
            fallback=fallback,
            max_concurrency=settings.max_concurrency,
            default_options=PipelineOptions(
                mode=settings.mode_overrides(),
                sequential=settings.sequential_options(),
            ),
        )

    @property
    def metrics(self) -> MetricsCollector:
        return self.executor.metrics

    def select_mode(self, file_count: int, options: PipelineOptions | None = None) -> ProcessingMode:
        options = options or self.default_options
        return ProcessingModeSelector.select(file_count, options.mode)

    async def run(
        self,
        files: Sequence[str],
        processor: FileProcessor,
        options: PipelineOptions | None = None,
    ) -> PipelineRun:
        """
        Process a batch of files.

        Args:
            files: Paths to process
            processor: Per-file analysis capability
            options: Per-run options; defaults to the orchestrator's

        Returns:
            PipelineRun with results in input order, the chosen mode and
            cache and metrics snapshots
        """
        options = options or self.default_options
        files = list(files)
        mode = self.select_mode(len(files), options)

        async with batch_lifecycle(len(files), mode, self.notifier) as batch:
            if mode == ProcessingMode.SEQUENTIAL:
                results = await self.sequential.process_files(
                    files, processor, options.sequential, options.observer, options.on_progress
                )
            else:
                results = await self.parallel.process_files(
                    files, processor, options.on_progress, options.observer
                )
            summary = BatchSummary.from_results(results)
            batch.complete(summary)

        return PipelineRun(
            results=results,
            mode=mode,
            cache_stats=self.cache.stats(),
            metrics=self.metrics.get_metrics(),
            summary=summary,
        )

    async def plan(
        self, files: Sequence[str], options: PipelineOptions | None = None
    ) -> ProcessingPlan:
        """
        Describe a run without invoking the processor.

        Args:
            files: Paths that would be processed
            options: Per-run options; defaults to the orchestrator's

        Returns:
            ProcessingPlan with the mode, worker limit and per-file readability
        """
        files = list(files)
        mode = self.select_mode(len(files), options)
        concurrency = (
            1 if mode == ProcessingMode.SEQUENTIAL else self.parallel.concurrency_for(len(files))
        )

        entries = []
        for path in files:
            try:
                await self.reader.read(path)
                readable = True
            except Exception as e:
                logger.debug(f"Planned file {path} is not readable: {e}")
                readable = False
            entries.append(FilePlan(file=path, readable=readable))

        return ProcessingPlan(mode=mode, concurrency=concurrency, files=entries)
