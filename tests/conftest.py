"""
Pytest configuration and shared fixtures.
"""

import errno
from collections.abc import Callable, Iterable
from typing import Any

import pytest

from async_review_pipeline.errors.backoff import BackoffPolicy
from async_review_pipeline.errors.metrics import MetricsCollector
from async_review_pipeline.errors.retry import RetryExecutor
from async_review_pipeline.processing.protocols import BaseObserver, Notification

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedProcessor:
    """FileProcessor whose per-file behavior is scripted.

    ``script`` maps a path to a list of outcomes consumed one per call. An
    exception instance is raised, anything else is returned. When a path's
    script is exhausted (or absent) the processor returns ``analysis:<path>``.
    """

    def __init__(self, script: dict[str, Iterable[Any]] | None = None) -> None:
        self.script = {path: list(outcomes) for path, outcomes in (script or {}).items()}
        self.calls: list[tuple[str, str | None]] = []

    async def process_file(self, path: str, content: str | None = None) -> Any:
        self.calls.append((path, content))
        outcomes = self.script.get(path)
        if outcomes:
            outcome = outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return f"analysis:{path}"

    def call_count(self, path: str) -> int:
        return sum(1 for called, _ in self.calls if called == path)


class DictReader:
    """ContentReader serving content from a dictionary."""

    def __init__(self, files: dict[str, str]) -> None:
        self.files = dict(files)
        self.reads: list[str] = []

    async def read(self, path: str) -> str:
        self.reads.append(path)
        if path not in self.files:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return self.files[path]


class RecordingObserver(BaseObserver):
    """Observer collecting events as tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def on_file_start(self, file: str, index: int, total: int) -> None:
        self.events.append(("start", file, index, total))

    def on_file_complete(self, result: Any, index: int, total: int) -> None:
        self.events.append(("complete", result.file, index, total))

    def on_error(self, file: str, error: Any, index: int, total: int) -> None:
        self.events.append(("error", file, error.kind, index, total))


class RecordingNotifier:
    """Notifier collecting notifications."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    async def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)


@pytest.fixture
def zero_backoff() -> BackoffPolicy:
    """Backoff policy without delays or jitter for every error kind."""
    return BackoffPolicy.uniform(base_delay_ms=0, max_delay_ms=0, jitter_ratio=0.0)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def executor(
    zero_backoff: BackoffPolicy,
    metrics: MetricsCollector,
    recording_sleep: RecordingSleep,
) -> RetryExecutor:
    """Retry executor that never actually sleeps."""
    return RetryExecutor(backoff=zero_backoff, metrics=metrics, sleep=recording_sleep)


@pytest.fixture
def make_processor() -> Callable[..., ScriptedProcessor]:
    """Factory for scripted processors."""
    return ScriptedProcessor


@pytest.fixture
def make_reader() -> Callable[[dict[str, str]], DictReader]:
    """Factory for in-memory content readers."""
    return DictReader


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
