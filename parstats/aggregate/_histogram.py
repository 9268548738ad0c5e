"""
Fixed-width histogram and histogram-based percentile estimates.

Values are binned at a width of 1/BINS_PER_UNIT (0.1) starting at the data
minimum. Percentiles are read off the histogram as the lower edge of the
first bin whose cumulative count reaches the rank threshold, so they are
approximate to within one bin width.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

import numpy as np
from numpy.typing import ArrayLike, NDArray

from parstats.core.compute.context import ExecutionContext
from parstats.core.exceptions import ValidationError
from parstats.aggregate._partition import choose_partition

BINS_PER_UNIT = 10

# 2**24 int64 counters (128 MiB): a data range of about 1.7 million units
MAX_BINS = 2**24


@dataclass(frozen=True)
class Histogram:
    """
    Bin counts over [minimum, maximum] at width 1/bins_per_unit.

    counts is read-only; counts.sum() equals the number of binned values.
    """
    counts: NDArray[np.int64]
    minimum: float
    maximum: float
    bins_per_unit: int = BINS_PER_UNIT

    @property
    def n_bins(self) -> int:
        return len(self.counts)

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    @property
    def bin_width(self) -> float:
        return 1.0 / self.bins_per_unit

    def lower_edge(self, index: int) -> float:
        """Value at the lower edge of bin `index`."""
        return index / self.bins_per_unit + self.minimum

    @property
    def edges(self) -> NDArray[np.float64]:
        """Lower edges of every bin."""
        return np.arange(self.n_bins) / self.bins_per_unit + self.minimum


@dataclass(frozen=True)
class PercentileMarkers:
    """Histogram estimates of the 25th percentile, median and 75th percentile."""
    p25: float
    median: float
    p75: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.p25, self.median, self.p75)


def bin_count(minimum: float, maximum: float) -> int:
    """
    Number of bins needed to cover [minimum, maximum].

    floor((maximum - minimum) * 10) + 1, evaluated in float32 exactly as the
    histogram kernel evaluates each element so that `maximum` always falls
    in the last bin.

    Raises
    ------
    ValidationError
        If a bound is not finite, maximum < minimum, or the range needs more
        than MAX_BINS bins (including a span that overflows float32).
    """
    if not (math.isfinite(minimum) and math.isfinite(maximum)):
        raise ValidationError(
            f"Histogram bounds must be finite, got minimum={minimum}, maximum={maximum}"
        )
    if maximum < minimum:
        raise ValidationError(
            f"Histogram needs maximum >= minimum, got minimum={minimum}, maximum={maximum}"
        )
    with np.errstate(over='ignore'):
        span = (np.float32(maximum) - np.float32(minimum)) * np.float32(BINS_PER_UNIT)
    if not np.isfinite(span):
        raise ValidationError(
            f"Histogram range overflows float32: minimum={minimum}, maximum={maximum}"
        )
    n_bins = int(np.floor(span)) + 1
    if n_bins > MAX_BINS:
        raise ValidationError(
            f"Histogram over minimum={minimum}, maximum={maximum} needs {n_bins} bins "
            f"of width {1 / BINS_PER_UNIT}, more than MAX_BINS={MAX_BINS}"
        )
    return n_bins


def build_histogram(
    ctx: ExecutionContext,
    values: ArrayLike,
    minimum: float,
    maximum: float,
    *,
    label: str = 'Bucket',
) -> Histogram:
    """
    Count how many values fall in each 0.1-wide bin, in one dispatch.

    Parameters
    ----------
    ctx : ExecutionContext
        Open execution context.
    values : array-like
        The original (unpadded) data. Padding elements must never be binned.
    minimum, maximum : float
        Data range, normally the results of the min / max reductions.

    Returns
    -------
    Histogram

    Raises
    ------
    ValidationError
        If values is empty or maximum < minimum. Checked before anything is
        allocated on the device.
    """
    data = np.asarray(values, dtype=np.float32).ravel()
    n = data.size
    if n == 0:
        raise ValidationError("build_histogram: values must contain at least 1 element")
    n_bins = bin_count(minimum, maximum)

    kernel = 'histogram'
    group_size = choose_partition(n, ctx.device_limit(kernel))
    source = ctx.upload(data)
    bins = ctx.allocate(n_bins, np.int64, 0)
    try:
        ctx.run(
            label, kernel, n, group_size,
            source, bins, np.float32(minimum), BINS_PER_UNIT,
        )
        counts = ctx.read_back(bins, n_bins).astype(np.int64, copy=False)
    finally:
        ctx.release(source)
        ctx.release(bins)

    counts.flags.writeable = False
    return Histogram(counts=counts, minimum=float(minimum), maximum=float(maximum))


def rank_thresholds(n: int) -> tuple[int, int, int]:
    """Cumulative counts that mark the quartiles: ceil(n/4), ceil(n/2), ceil(3n/4)."""
    return ((n + 3) // 4, (n + 1) // 2, (3 * n + 3) // 4)


def percentile_markers(histogram: Histogram, n: int | None = None) -> PercentileMarkers:
    """
    Walk the bins in ascending order and report the lower edge of the first
    bin whose running count reaches each rank threshold.

    Parameters
    ----------
    histogram : Histogram
    n : int, optional
        Number of observations. Defaults to the histogram total.

    Raises
    ------
    ValidationError
        If n < 1 or the histogram holds fewer than n values.
    """
    if n is None:
        n = histogram.total
    if n < 1:
        raise ValidationError(f"percentile_markers: need at least 1 observation, got {n}")
    if histogram.total < n:
        raise ValidationError(
            f"percentile_markers: histogram holds {histogram.total} values, "
            f"fewer than n={n}"
        )

    running = np.cumsum(histogram.counts)
    indices = np.searchsorted(running, rank_thresholds(n), side='left')
    p25, median, p75 = (histogram.lower_edge(int(i)) for i in indices)
    return PercentileMarkers(p25=p25, median=median, p75=p75)
