"""
Pipeline protocols and type definitions.

This module defines the contracts of the collaborators the pipeline consumes:
the per-file analysis function, the content reader, the notification sink and
the progress observer.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..errors.typed import ClassifiedError

if TYPE_CHECKING:
    from .models import ProcessingResult

ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class FileProcessor(Protocol):
    """
    Protocol for the per-file analysis capability.

    The pipeline classifies anything the processor raises.
    """

    async def process_file(self, path: str, content: str | None = None) -> Any:
        """
        Analyze one file.

        Args:
            path: Path of the file
            content: File content, or None if the processor loads it itself

        Returns:
            The analysis result
        """
        ...


@runtime_checkable
class ContentReader(Protocol):
    """Protocol for loading file content."""

    async def read(self, path: str) -> str:
        """
        Read the content of a file.

        Args:
            path: Path of the file

        Returns:
            The file content
        """
        ...


class PathContentReader:
    """Reads text files from the local filesystem without blocking the loop."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(Path(path).read_text, encoding=self.encoding)


class NotificationType(Enum):
    """Notification categories."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


@dataclass(frozen=True)
class Notification:
    """A user-facing message."""

    message: str
    type: NotificationType = NotificationType.INFO


@runtime_checkable
class Notifier(Protocol):
    """
    Protocol for the notification sink.

    Notifications are fire-and-forget: failures are logged by the caller and
    never propagate into the pipeline.
    """

    async def notify(self, notification: Notification) -> None:
        ...


@runtime_checkable
class ProcessingObserver(Protocol):
    """
    Protocol for per-file progress events.

    Callbacks are synchronous. Exceptions raised by an observer are logged
    and ignored.
    """

    def on_file_start(self, file: str, index: int, total: int) -> None:
        ...

    def on_file_complete(self, result: "ProcessingResult", index: int, total: int) -> None:
        ...

    def on_error(self, file: str, error: ClassifiedError, index: int, total: int) -> None:
        ...


class BaseObserver:
    """No-op observer to subclass when only some events are of interest."""

    def on_file_start(self, file: str, index: int, total: int) -> None:
        pass

    def on_file_complete(self, result: "ProcessingResult", index: int, total: int) -> None:
        pass

    def on_error(self, file: str, error: ClassifiedError, index: int, total: int) -> None:
        pass
