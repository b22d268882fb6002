"""
Tests for the parallel processor.
"""

import asyncio

import pytest

from async_review_pipeline.cache.analysis import AnalysisCache
from async_review_pipeline.processing.models import FileStatus
from async_review_pipeline.processing.parallel import (
    DEFAULT_CONCURRENCY_CAP,
    ParallelProcessor,
)
from async_review_pipeline.processing.runner import FileRunner


class DelayedProcessor:
    """Processor whose files finish after per-file delays."""

    def __init__(self, delays: dict[str, float], failing: set[str] | None = None) -> None:
        self.delays = delays
        self.failing = failing or set()
        self.active = 0
        self.peak = 0

    async def process_file(self, path, content=None):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delays.get(path, 0))
            if path in self.failing:
                raise RuntimeError("401 Unauthorized")
            return f"analysis:{path}"
        finally:
            self.active -= 1


class TestParallelProcessor:
    """Tests for ParallelProcessor."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_results_follow_input_order(self, executor):
        """Test that results are re-sorted to input order."""
        processor = DelayedProcessor({"a": 0.03, "b": 0.0, "c": 0.015})
        parallel = ParallelProcessor(FileRunner(executor))
        progress = []

        results = await parallel.process_files(
            ["a", "b", "c"],
            processor,
            on_progress=lambda done, total: progress.append((done, total)),
        )

        assert [r.file for r in results] == ["a", "b", "c"]
        assert all(r.success for r in results)
        assert progress == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_completion_order_for_observer(self, executor, observer):
        """Test that observer events arrive in completion order."""
        processor = DelayedProcessor({"a": 0.03, "b": 0.0, "c": 0.015})
        parallel = ParallelProcessor(FileRunner(executor))

        await parallel.process_files(["a", "b", "c"], processor, observer=observer)

        finished = [event[1] for event in observer.events if event[0] != "start"]
        assert finished == ["b", "c", "a"]
        assert sorted(event[1] for event in observer.events if event[0] == "start") == [
            "a",
            "b",
            "c",
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(self, executor):
        """Test that one failing file leaves the others intact."""
        processor = DelayedProcessor({"a": 0.0, "b": 0.01, "c": 0.02}, failing={"a"})
        parallel = ParallelProcessor(FileRunner(executor))

        results = await parallel.process_files(["a", "b", "c"], processor)

        assert [r.status for r in results] == [
            FileStatus.FAILED,
            FileStatus.SUCCEEDED,
            FileStatus.SUCCEEDED,
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bounded_concurrency(self, executor):
        """Test that no more than max_concurrency files run at once."""
        files = [f"f{i}" for i in range(10)]
        processor = DelayedProcessor({path: 0.01 for path in files})
        parallel = ParallelProcessor(FileRunner(executor), max_concurrency=3)

        results = await parallel.process_files(files, processor)

        assert len(results) == 10
        assert processor.peak <= 3

    @pytest.mark.unit
    def test_concurrency_defaults_to_cap(self, executor):
        """Test the default worker limit."""
        parallel = ParallelProcessor(FileRunner(executor))

        assert parallel.concurrency_for(5) == 5
        assert parallel.concurrency_for(500) == DEFAULT_CONCURRENCY_CAP

    @pytest.mark.unit
    def test_rejects_invalid_concurrency(self, executor):
        """Test max_concurrency validation."""
        with pytest.raises(ValueError):
            ParallelProcessor(FileRunner(executor), max_concurrency=0)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_content_computed_once(self, executor, make_processor, make_reader):
        """Test that the cache deduplicates identical concurrent work."""
        processor = make_processor()
        reader = make_reader({"a.py": "same"})
        parallel = ParallelProcessor(
            FileRunner(executor, reader=reader, cache=AnalysisCache())
        )

        results = await parallel.process_files(["a.py", "a.py", "a.py"], processor)

        assert processor.call_count("a.py") == 1
        assert [r.result for r in results] == ["analysis:a.py"] * 3
        assert sum(r.cached for r in results) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_batch(self, executor, make_processor):
        """Test that an empty batch yields no results."""
        parallel = ParallelProcessor(FileRunner(executor))

        assert await parallel.process_files([], make_processor()) == []
