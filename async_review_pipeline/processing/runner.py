"""
Single-file execution shared by the sequential and parallel processors.
"""

from dataclasses import replace
import logging
import time
from typing import Any

from ..cache.analysis import AnalysisCache, build_cache_key
from ..errors.models import ErrorContext
from ..errors.retry import RetryExecutor, RetryOptions
from ..errors.typed import ClassifiedError
from .models import FileStatus, ProcessingResult
from .protocols import ContentReader, FileProcessor

logger = logging.getLogger(__name__)

PROCESS_OPERATION = "process_file"
READ_OPERATION = "read_file"


class FileRunner:
    """Runs one file through reading, caching, retry and fallback.

    ``run`` never raises for a file-level failure: every error is classified
    and returned as a failed ``ProcessingResult``.
    """

    def __init__(
        self,
        executor: RetryExecutor,
        options: RetryOptions | None = None,
        reader: ContentReader | None = None,
        cache: AnalysisCache | None = None,
        fallback: FileProcessor | None = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            executor: Retry executor applied to every processor call
            options: Retry options; the fallback operation is set per file
            reader: Content reader; without one the processor loads content
            cache: Optional cache; requires a reader to fingerprint content
            fallback: Optional processor invoked when the primary is exhausted
        """
        if cache is not None and reader is None:
            raise ValueError("A content reader is required when caching is enabled")
        self.executor = executor
        self.options = options or RetryOptions()
        self.reader = reader
        self.cache = cache
        self.fallback = fallback

    async def run(self, path: str, processor: FileProcessor) -> ProcessingResult:
        """
        Process one file.

        Args:
            path: Path of the file
            processor: Per-file analysis capability

        Returns:
            The file's outcome
        """
        started = time.perf_counter()
        context = ErrorContext(operation=PROCESS_OPERATION, file_path=path)
        attempts = 0
        fallback_used = False

        async def read_content() -> str | None:
            if self.reader is None:
                return None
            return await self.executor.run(
                lambda: self.reader.read(path),
                ErrorContext(operation=READ_OPERATION, file_path=path),
                RetryOptions(enable_retry=False, enable_fallback=False),
            )

        try:
            content = await read_content()

            async def primary() -> Any:
                nonlocal attempts
                attempts += 1
                return await processor.process_file(path, content)

            options = self.options
            if self.fallback is not None:
                fallback = self.fallback

                async def fallback_operation() -> Any:
                    nonlocal fallback_used
                    fallback_used = True
                    return await fallback.process_file(path, content)

                options = replace(options, fallback_operation=fallback_operation)

            async def compute() -> tuple[Any, bool]:
                value = await self.executor.run(primary, context, options)
                return value, fallback_used

            # The fallback flag is cached with the value so hits report it too
            if self.cache is not None and content is not None:
                key = build_cache_key(path, content)
                result, from_fallback = await self.cache.get_or_compute(key, compute)
            else:
                result, from_fallback = await compute()
        except ClassifiedError as error:
            return self._failed(path, error, started, attempts, fallback_used)
        except Exception as raw:
            error = self.executor.classifier.classify(raw, context)
            return self._failed(path, error, started, attempts, fallback_used)

        return ProcessingResult(
            file=path,
            status=FileStatus.SUCCEEDED,
            result=result,
            duration_ms=_elapsed_ms(started),
            cached=attempts == 0,
            fallback_used=from_fallback,
            attempts=attempts,
        )

    def _failed(
        self,
        path: str,
        error: ClassifiedError,
        started: float,
        attempts: int,
        fallback_used: bool,
    ) -> ProcessingResult:
        logger.debug(f"{path} failed after {attempts} attempts: {error.kind.value}")
        return ProcessingResult(
            file=path,
            status=FileStatus.FAILED,
            error=error,
            duration_ms=_elapsed_ms(started),
            fallback_used=fallback_used,
            attempts=attempts,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
