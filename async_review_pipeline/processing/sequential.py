"""
Sequential batch processing.

Files run strictly one after another in input order, with synchronous
progress callbacks. A failure can halt the batch; files that were never
started are reported as skipped.
"""

from collections.abc import Sequence
from dataclasses import dataclass
import logging

from .lifecycle import call_observer
from .models import ProcessingResult
from .protocols import FileProcessor, ProcessingObserver, ProgressCallback
from .runner import FileRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequentialOptions:
    """Halting policy for sequential processing."""

    continue_on_error: bool = True
    max_errors: int | None = None

    def __post_init__(self) -> None:
        """Reject non-positive error limits."""
        if self.max_errors is not None and self.max_errors < 1:
            raise ValueError(f"max_errors must be >= 1, got {self.max_errors}")

    def should_halt(self, failure_count: int) -> bool:
        """Return True if no further files may start after ``failure_count`` failures."""
        if failure_count == 0:
            return False
        if not self.continue_on_error:
            return True
        return self.max_errors is not None and failure_count >= self.max_errors


class SequentialProcessor:
    """Processes files one at a time."""

    def __init__(self, runner: FileRunner, options: SequentialOptions | None = None) -> None:
        """
        Initialize the processor.

        Args:
            runner: Executes a single file
            options: Default halting policy
        """
        self.runner = runner
        self.options = options or SequentialOptions()

    async def process_files(
        self,
        files: Sequence[str],
        processor: FileProcessor,
        options: SequentialOptions | None = None,
        observer: ProcessingObserver | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[ProcessingResult]:
        """
        Process files in input order.

        Args:
            files: Paths to process
            processor: Per-file analysis capability
            options: Halting policy overriding the default
            observer: Receives start, completion and error events
            on_progress: Called with (completed, total) after each executed file

        Returns:
            One result per input file, in input order
        """
        options = options or self.options
        total = len(files)
        results: list[ProcessingResult] = []
        failures = 0
        halted = False

        for index, path in enumerate(files):
            if halted:
                results.append(ProcessingResult.skipped_file(path))
                continue

            call_observer(getattr(observer, "on_file_start", None), path, index, total)
            logger.debug(f"Processing file {index + 1}/{total}: {path}")

            outcome = await self.runner.run(path, processor)
            results.append(outcome)

            if outcome.success:
                call_observer(getattr(observer, "on_file_complete", None), outcome, index, total)
                call_observer(on_progress, index + 1, total)
                continue

            failures += 1
            call_observer(getattr(observer, "on_error", None), path, outcome.error, index, total)
            call_observer(on_progress, index + 1, total)

            if options.should_halt(failures):
                halted = True
                remaining = total - index - 1
                if not options.continue_on_error:
                    logger.error(
                        f"Stopping processing after error in {path} "
                        f"(continue_on_error=False), skipping {remaining} files"
                    )
                else:
                    logger.error(
                        f"Stopping processing due to {failures} errors "
                        f"(max: {options.max_errors}), skipping {remaining} files"
                    )

        return results
