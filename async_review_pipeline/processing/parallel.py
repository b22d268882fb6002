"""
Parallel batch processing.

Files run concurrently with bounded fan-out. Progress events are delivered
from a single consumer loop in completion order, while the returned results
always follow input order.
"""

import asyncio
from collections.abc import Sequence
import logging

from .lifecycle import call_observer
from .models import ProcessingResult
from .protocols import FileProcessor, ProcessingObserver, ProgressCallback
from .runner import FileRunner

logger = logging.getLogger(__name__)

# Upper bound on concurrent files when no explicit limit is configured
DEFAULT_CONCURRENCY_CAP = 32


class ParallelProcessor:
    """Processes files concurrently."""

    def __init__(self, runner: FileRunner, max_concurrency: int | None = None) -> None:
        """
        Initialize the processor.

        Args:
            runner: Executes a single file
            max_concurrency: Maximum files in flight; None means up to
                DEFAULT_CONCURRENCY_CAP
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.runner = runner
        self.max_concurrency = max_concurrency

    def concurrency_for(self, file_count: int) -> int:
        """Return the worker limit used for a batch of ``file_count`` files."""
        limit = self.max_concurrency or DEFAULT_CONCURRENCY_CAP
        return max(1, min(limit, file_count))

    async def process_files(
        self,
        files: Sequence[str],
        processor: FileProcessor,
        on_progress: ProgressCallback | None = None,
        observer: ProcessingObserver | None = None,
    ) -> list[ProcessingResult]:
        """
        Process files concurrently.

        A failing file never cancels its siblings.

        Args:
            files: Paths to process
            processor: Per-file analysis capability
            on_progress: Called with (completed, total) as each file finishes
            observer: Receives a start event when a file acquires a worker,
                then completion and error events in completion order

        Returns:
            One result per input file, in input order
        """
        total = len(files)
        if total == 0:
            return []

        limit = self.concurrency_for(total)
        semaphore = asyncio.Semaphore(limit)
        logger.info(f"Processing {total} files with up to {limit} concurrent workers")

        async def run_one(index: int, path: str) -> tuple[int, ProcessingResult]:
            async with semaphore:
                call_observer(getattr(observer, "on_file_start", None), path, index, total)
                return index, await self.runner.run(path, processor)

        tasks = [
            asyncio.create_task(run_one(index, path)) for index, path in enumerate(files)
        ]
        results: list[ProcessingResult | None] = [None] * total
        completed = 0

        try:
            for next_done in asyncio.as_completed(tasks):
                index, outcome = await next_done
                results[index] = outcome
                completed += 1

                if outcome.success:
                    call_observer(
                        getattr(observer, "on_file_complete", None), outcome, index, total
                    )
                else:
                    call_observer(
                        getattr(observer, "on_error", None),
                        outcome.file,
                        outcome.error,
                        index,
                        total,
                    )
                call_observer(on_progress, completed, total)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        return [outcome for outcome in results if outcome is not None]
