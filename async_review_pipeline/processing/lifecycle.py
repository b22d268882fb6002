"""
Batch lifecycle management.

This module wraps a batch run with start and completion notifications and
shields the pipeline from failures of its observers and notifiers.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import logging
import time
from typing import Any

from .models import BatchSummary
from .modes import ProcessingMode
from .protocols import Notification, NotificationType, Notifier

logger = logging.getLogger(__name__)


def call_observer(callback: Callable[..., Any] | None, *args: Any) -> None:
    """
    Invoke a progress callback, logging instead of propagating its errors.

    Args:
        callback: Bound observer method or plain callable, may be None
        *args: Arguments for the callback
    """
    if callback is None:
        return
    try:
        callback(*args)
    except Exception as e:
        name = getattr(callback, "__qualname__", repr(callback))
        logger.error(f"Progress callback {name} failed: {e}")


async def notify_safely(
    notifier: Notifier | None,
    message: str,
    notification_type: NotificationType = NotificationType.INFO,
) -> None:
    """
    Send a notification without letting notifier failures escape.

    Args:
        notifier: Notification sink, may be None
        message: Message text
        notification_type: Notification category
    """
    if notifier is None:
        return
    try:
        await notifier.notify(Notification(message=message, type=notification_type))
    except Exception as e:
        logger.warning(f"Notifier failed to deliver '{message}': {e}")


@dataclass
class BatchRun:
    """Mutable state of a batch while it runs."""

    total: int
    mode: ProcessingMode
    started_at: float = field(default_factory=time.perf_counter)
    summary: BatchSummary | None = None

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)

    def complete(self, summary: BatchSummary) -> None:
        self.summary = summary


def completion_message(summary: BatchSummary, elapsed_ms: int) -> tuple[str, NotificationType]:
    """
    Build the completion notification for a batch.

    Args:
        summary: Batch statistics
        elapsed_ms: Wall-clock duration of the batch

    Returns:
        Message text and notification type
    """
    counts = (
        f"{summary.succeeded} passed, {summary.failed} failed, "
        f"{summary.skipped} skipped of {summary.total} files in {elapsed_ms}ms"
    )
    if summary.failed == 0 and summary.skipped == 0:
        return f"Batch completed: {counts}", NotificationType.SUCCESS
    if summary.succeeded == 0:
        message = f"Batch failed: {counts}"
        notification_type = NotificationType.ERROR
    else:
        message = f"Batch completed with errors: {counts}"
        notification_type = NotificationType.WARNING
    if summary.dominant_error_guidance:
        message = f"{message}. {summary.dominant_error_guidance}"
    return message, notification_type


@asynccontextmanager
async def batch_lifecycle(
    total: int,
    mode: ProcessingMode,
    notifier: Notifier | None = None,
) -> AsyncGenerator[BatchRun]:
    """
    Context manager for one batch run.

    Sends an info notification on entry and a success, warning or error
    notification on exit. Notifier failures are logged and ignored.

    Example:
        async with batch_lifecycle(len(files), mode, notifier) as batch:
            results = await processor.process_files(files, file_processor)
            batch.complete(BatchSummary.from_results(results))
    """
    batch = BatchRun(total=total, mode=mode)
    logger.info(f"Starting {mode.value} processing of {total} files")
    await notify_safely(
        notifier, f"Processing {total} files ({mode.value})", NotificationType.INFO
    )

    try:
        yield batch
    except Exception as e:
        logger.error(f"Batch processing aborted after {batch.elapsed_ms}ms: {e}")
        await notify_safely(notifier, f"Batch processing aborted: {e}", NotificationType.ERROR)
        raise

    elapsed = batch.elapsed_ms
    if batch.summary is None:
        logger.info(f"Finished {mode.value} processing in {elapsed}ms")
        return

    message, notification_type = completion_message(batch.summary, elapsed)
    logger.info(message)
    await notify_safely(notifier, message, notification_type)
