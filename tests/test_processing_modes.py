"""
Tests for processing mode selection.
"""

import pytest

from async_review_pipeline.processing.modes import (
    DEFAULT_SEQUENTIAL_THRESHOLD,
    ModeOverrides,
    ProcessingMode,
    ProcessingModeSelector,
)


class TestProcessingModeSelector:
    """Tests for ProcessingModeSelector."""

    @pytest.mark.unit
    def test_small_batch_is_sequential(self):
        """Test that batches at or below the threshold run sequentially."""
        overrides = ModeOverrides(threshold=5)

        assert ProcessingModeSelector.select(2, overrides) == ProcessingMode.SEQUENTIAL
        assert ProcessingModeSelector.select(5, overrides) == ProcessingMode.SEQUENTIAL

    @pytest.mark.unit
    def test_large_batch_is_parallel(self):
        """Test that batches above the threshold run in parallel."""
        assert (
            ProcessingModeSelector.select(50, ModeOverrides(threshold=5))
            == ProcessingMode.PARALLEL
        )

    @pytest.mark.unit
    def test_force_sequential(self):
        """Test that force_sequential overrides the file count."""
        overrides = ModeOverrides(force_sequential=True, threshold=5)

        assert ProcessingModeSelector.select(50, overrides) == ProcessingMode.SEQUENTIAL

    @pytest.mark.unit
    def test_force_sequential_wins_over_force_parallel(self):
        """Test the priority of forced modes."""
        overrides = ModeOverrides(force_sequential=True, force_parallel=True)

        assert ProcessingModeSelector.select(1, overrides) == ProcessingMode.SEQUENTIAL

    @pytest.mark.unit
    def test_force_parallel(self):
        """Test that force_parallel applies to small batches."""
        overrides = ModeOverrides(force_parallel=True)

        assert ProcessingModeSelector.select(1, overrides) == ProcessingMode.PARALLEL

    @pytest.mark.unit
    def test_default_threshold(self):
        """Test selection with default overrides."""
        assert ProcessingModeSelector.select(DEFAULT_SEQUENTIAL_THRESHOLD) == (
            ProcessingMode.SEQUENTIAL
        )
        assert ProcessingModeSelector.select(DEFAULT_SEQUENTIAL_THRESHOLD + 1) == (
            ProcessingMode.PARALLEL
        )

    @pytest.mark.unit
    def test_rejects_negative_threshold(self):
        """Test threshold validation."""
        with pytest.raises(ValueError):
            ModeOverrides(threshold=-1)
