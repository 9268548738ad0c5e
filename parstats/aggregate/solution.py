"""
Aggregation solution types.

Contains the parameter payload and user-facing solution wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, TYPE_CHECKING

from parstats.core.result import Result
from parstats.aggregate._histogram import Histogram, PercentileMarkers

if TYPE_CHECKING:
    from parstats.aggregate.design import AggregateDesign


@dataclass(frozen=True)
class AggregateParams:
    """
    Parameter payload for the aggregation pipeline.

    variance is the population variance (sum of squared deviations / n).
    p25, median and p75 are histogram estimates, accurate to one bin width.
    """
    n: int
    sum: float
    mean: float
    minimum: float
    maximum: float
    variance: float
    std_dev: float
    p25: float
    median: float
    p75: float
    histogram: Histogram

    @property
    def percentiles(self) -> PercentileMarkers:
        return PercentileMarkers(p25=self.p25, median=self.median, p75=self.p75)


@dataclass
class AggregateSolution:
    """
    User-facing aggregation results.

    Wraps Result[AggregateParams] and provides convenient accessors.
    """
    _result: Result[AggregateParams]
    _design: 'AggregateDesign'

    # --- Statistics ---

    @property
    def n(self) -> int:
        return self._result.params.n

    @property
    def sum(self) -> float:
        return self._result.params.sum

    @property
    def mean(self) -> float:
        return self._result.params.mean

    @property
    def minimum(self) -> float:
        return self._result.params.minimum

    @property
    def maximum(self) -> float:
        return self._result.params.maximum

    @property
    def variance(self) -> float:
        """Population variance."""
        return self._result.params.variance

    @property
    def std_dev(self) -> float:
        return self._result.params.std_dev

    @property
    def p25(self) -> float:
        return self._result.params.p25

    @property
    def median(self) -> float:
        return self._result.params.median

    @property
    def p75(self) -> float:
        return self._result.params.p75

    @property
    def percentiles(self) -> PercentileMarkers:
        return self._result.params.percentiles

    @property
    def histogram(self) -> Histogram:
        return self._result.params.histogram

    # --- Metadata ---

    @property
    def duration_seconds(self) -> float:
        """Wall-clock duration of the whole pipeline."""
        return self._result.timing['total_seconds']

    @property
    def dispatches(self) -> list[dict[str, Any]]:
        """One profiling record per kernel dispatch, in issue order."""
        return self._result.info['dispatches']

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def as_dict(self) -> dict[str, Any]:
        """Scalar statistics and duration, without the histogram."""
        record = asdict(self._result.params)
        del record['histogram']
        record['duration_seconds'] = self.duration_seconds
        return record

    def summary(self) -> str:
        """Plain-text report of the statistics."""
        duration_ns = int(self.duration_seconds * 1e9)
        lines = [
            f"Average: {self.mean:f}",
            f"Minimum: {self.minimum:f}",
            f"Maximum: {self.maximum:f}",
            f"Standard deviation: {self.std_dev:f}",
            f"25th Percentile: {self.p25:.1f}",
            f"Median: {self.median:.1f}",
            f"75th Percentile: {self.p75:.1f}",
            f"Execution duration [ns]: {duration_ns}",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"AggregateSolution(n={self.n}, mean={self.mean:.6g}, "
            f"sd={self.std_dev:.6g}, backend={self.backend_name!r})"
        )
