"""
Parallel aggregation module.

Descriptive statistics over a large 1D float32 buffer, computed entirely
through data-parallel kernel dispatches on a compute backend.

Public API:
    describe(data)          - Full pipeline: sum, mean, min, max, variance,
                              standard deviation, histogram quartiles
    tree_reduce(ctx, x, op) - Multi-pass reduction (add, min, max)
    transform(ctx, x, p)    - Elementwise squared deviation from p
    build_histogram(...)    - 0.1-wide bin counts over [min, max]
    percentile_markers(h)   - Quartile estimates from a histogram
    choose_partition(n, l)  - Work-group size for a dispatch
"""

from parstats.aggregate.design import AggregateDesign
from parstats.aggregate.solution import AggregateParams, AggregateSolution
from parstats.aggregate.solvers import describe
from parstats.aggregate._partition import PartitionPlan, choose_partition, plan_partition
from parstats.aggregate._reduce import PAD_BLOCK, ReductionState, pad_to_block, tree_reduce
from parstats.aggregate._transform import transform
from parstats.aggregate._histogram import (
    BINS_PER_UNIT,
    MAX_BINS,
    Histogram,
    PercentileMarkers,
    bin_count,
    build_histogram,
    percentile_markers,
    rank_thresholds,
)
from parstats.aggregate.backends.cpu import CPUComputeBackend

__all__ = [
    "describe",
    "tree_reduce",
    "transform",
    "build_histogram",
    "percentile_markers",
    "choose_partition",
    "plan_partition",
    "pad_to_block",
    "bin_count",
    "rank_thresholds",
    "AggregateDesign",
    "AggregateParams",
    "AggregateSolution",
    "CPUComputeBackend",
    "Histogram",
    "PartitionPlan",
    "PercentileMarkers",
    "ReductionState",
    "PAD_BLOCK",
    "BINS_PER_UNIT",
    "MAX_BINS",
]
