"""
Tests for the content-addressed analysis cache.
"""

import asyncio

import pytest

from async_review_pipeline.cache.analysis import (
    AnalysisCache,
    CacheKey,
    build_cache_key,
    fingerprint,
)


class TestCacheKeys:
    """Tests for cache key helpers."""

    @pytest.mark.unit
    def test_fingerprint_is_sha256(self):
        """Test the fingerprint of known content."""
        assert fingerprint("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )
        assert fingerprint("abc") == fingerprint(b"abc")

    @pytest.mark.unit
    def test_content_change_changes_key(self):
        """Test that edited content yields a different key for the same path."""
        before = build_cache_key("a.py", "x = 1\n")
        after = build_cache_key("a.py", "x = 2\n")

        assert before.path == after.path
        assert before != after

    @pytest.mark.unit
    def test_key_string(self):
        """Test the textual form of a key."""
        key = CacheKey("a.py", "abc")
        assert str(key) == "a.py:abc"


class TestAnalysisCache:
    """Tests for AnalysisCache."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_computes_once_and_serves_hits(self):
        """Test that later calls reuse the stored value."""
        cache = AnalysisCache()
        key = build_cache_key("a.py", "content")
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            return "analysis"

        first = await cache.get_or_compute(key, compute)
        second = await cache.get_or_compute(key, compute)

        assert first == second == "analysis"
        assert calls == 1
        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.entries, stats.in_flight) == (1, 1, 1, 0)
        assert stats.hit_rate == pytest.approx(50.0)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_computation(self):
        """Test that N concurrent callers trigger exactly one computation."""
        cache = AnalysisCache()
        key = build_cache_key("a.py", "content")
        release = asyncio.Event()
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            await release.wait()
            return {"grade": "A"}

        tasks = [asyncio.create_task(cache.get_or_compute(key, compute)) for _ in range(20)]
        await asyncio.sleep(0)
        assert cache.stats().in_flight == 1

        release.set()
        results = await asyncio.gather(*tasks)

        assert calls == 1
        assert all(result == {"grade": "A"} for result in results)
        assert cache.stats().in_flight == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_shared_and_not_cached(self):
        """Test that failures reach all waiters and are recomputed later."""
        cache = AnalysisCache()
        key = build_cache_key("a.py", "content")
        release = asyncio.Event()
        calls = 0

        async def failing():
            nonlocal calls
            calls += 1
            await release.wait()
            raise RuntimeError("analysis failed")

        tasks = [asyncio.create_task(cache.get_or_compute(key, failing)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert calls == 1
        assert all(isinstance(result, RuntimeError) for result in results)
        assert key not in cache

        async def succeeding():
            return "recovered"

        assert await cache.get_or_compute(key, succeeding) == "recovered"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_distinct_keys_compute_separately(self):
        """Test that different content is computed independently."""
        cache = AnalysisCache()

        async def compute_for(value):
            async def compute():
                return value

            return compute

        one = await cache.get_or_compute(build_cache_key("a.py", "1"), await compute_for(1))
        two = await cache.get_or_compute(build_cache_key("a.py", "2"), await compute_for(2))

        assert (one, two) == (1, 2)
        assert len(cache) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self):
        """Test removing entries by path and clearing everything."""
        cache = AnalysisCache()

        async def compute():
            return "value"

        await cache.get_or_compute(build_cache_key("a.py", "1"), compute)
        await cache.get_or_compute(build_cache_key("a.py", "2"), compute)
        await cache.get_or_compute(build_cache_key("b.py", "1"), compute)

        assert cache.invalidate("a.py") == 2
        assert len(cache) == 1
        assert cache.get(build_cache_key("b.py", "1")) == "value"

        cache.clear()
        stats = cache.stats()
        assert (stats.entries, stats.hits, stats.misses) == (0, 0, 0)
