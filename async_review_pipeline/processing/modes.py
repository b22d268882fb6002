"""
Processing mode selection.
"""

from dataclasses import dataclass
from enum import Enum

DEFAULT_SEQUENTIAL_THRESHOLD = 3


class ProcessingMode(Enum):
    """How a batch of files is executed."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


@dataclass(frozen=True)
class ModeOverrides:
    """Explicit mode choices and the sequential threshold."""

    force_sequential: bool = False
    force_parallel: bool = False
    threshold: int = DEFAULT_SEQUENTIAL_THRESHOLD

    def __post_init__(self) -> None:
        """Reject negative thresholds."""
        if self.threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {self.threshold}")


class ProcessingModeSelector:
    """Chooses sequential or parallel execution for a batch."""

    @staticmethod
    def select(file_count: int, overrides: ModeOverrides | None = None) -> ProcessingMode:
        """
        Select the processing mode for a batch.

        ``force_sequential`` wins over ``force_parallel``. Without a forced
        mode, batches of at most ``threshold`` files run sequentially.

        Args:
            file_count: Number of files in the batch
            overrides: Forced modes and threshold

        Returns:
            The processing mode
        """
        overrides = overrides or ModeOverrides()
        if overrides.force_sequential:
            return ProcessingMode.SEQUENTIAL
        if overrides.force_parallel:
            return ProcessingMode.PARALLEL
        if file_count <= overrides.threshold:
            return ProcessingMode.SEQUENTIAL
        return ProcessingMode.PARALLEL
