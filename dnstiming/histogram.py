"""Append-only histogram of lookup durations."""

import bisect
import math
from typing import List


class DurationHistogram:
    """Positive duration samples (milliseconds) for one strategy.

    Statistics of an empty histogram are NaN rather than errors so a run
    with no successful trials still produces a report.
    """

    def __init__(self, name: str):
        self.name = name
        self._samples: List[float] = []

    def record(self, value: float) -> None:
        """Add a sample. Zero and negative durations are rejected."""
        if not value > 0:
            raise ValueError(f"Histogram {self.name} only records positive durations, got {value!r}")
        # Samples stay sorted so percentile queries are a direct index.
        bisect.insort(self._samples, value)

    @property
    def count(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> List[float]:
        return list(self._samples)

    @property
    def min(self) -> float:
        return self._samples[0] if self._samples else math.nan

    @property
    def max(self) -> float:
        return self._samples[-1] if self._samples else math.nan

    @property
    def mean(self) -> float:
        if not self._samples:
            return math.nan
        return math.fsum(self._samples) / len(self._samples)

    @property
    def stddev(self) -> float:
        if not self._samples:
            return math.nan
        mean = self.mean
        variance = math.fsum((s - mean) ** 2 for s in self._samples) / len(self._samples)
        return math.sqrt(variance)

    def percentile(self, percentile: float) -> float:
        """Nearest-rank percentile, percentile in (0, 100]."""
        if not 0 < percentile <= 100:
            raise ValueError(f"percentile must be in (0, 100], got {percentile!r}")
        if not self._samples:
            return math.nan
        rank = max(1, math.ceil(percentile / 100 * len(self._samples)))
        return self._samples[rank - 1]

    def __len__(self) -> int:
        return len(self._samples)

    def __repr__(self) -> str:
        return f"DurationHistogram(name={self.name!r}, count={self.count})"
