"""
Solver dispatch for the aggregation pipeline.

describe() runs the full pipeline: sum, mean, max, min, variance via the
squared-deviation transform, histogram, and histogram percentiles. Every
step is a separate sequence of kernel dispatches; steps never overlap.
"""

from __future__ import annotations

from typing import Literal
import logging
import math

from numpy.typing import ArrayLike

from parstats.core.compute.context import ExecutionContext
from parstats.core.compute.device import select_device
from parstats.core.compute.timing import Timer
from parstats.core.exceptions import ValidationError
from parstats.core.protocols import ComputeBackend
from parstats.core.result import Result
from parstats.aggregate.design import AggregateDesign
from parstats.aggregate.solution import AggregateParams, AggregateSolution
from parstats.aggregate.backends.cpu import CPUComputeBackend
from parstats.aggregate._reduce import PAD_BLOCK, tree_reduce
from parstats.aggregate._transform import transform
from parstats.aggregate._histogram import (
    BINS_PER_UNIT,
    build_histogram,
    percentile_markers,
)

logger = logging.getLogger(__name__)

BackendChoice = Literal['auto', 'cpu', 'gpu']


def _ensure_design(data: ArrayLike | AggregateDesign) -> AggregateDesign:
    """Convert raw array to AggregateDesign if needed."""
    if isinstance(data, AggregateDesign):
        return data
    return AggregateDesign.from_array(data)


def _get_backend(
    backend: BackendChoice | ComputeBackend,
    max_group_size: int | None = None,
) -> ComputeBackend:
    """Select backend based on preference."""
    if not isinstance(backend, str):
        if isinstance(backend, ComputeBackend):
            return backend
        raise ValidationError(
            f"backend must be 'auto', 'cpu', 'gpu' or a ComputeBackend, "
            f"got {type(backend).__name__}"
        )

    if backend == 'cpu':
        return CPUComputeBackend(max_group_size=max_group_size)

    if backend == 'auto':
        device = select_device('auto')
        if device.is_gpu:
            try:
                from parstats.aggregate.backends.gpu import GPUComputeBackend
                return GPUComputeBackend(device=device, max_group_size=max_group_size)
            except ImportError:
                return CPUComputeBackend(max_group_size=max_group_size)
        return CPUComputeBackend(max_group_size=max_group_size, device=device)

    if backend == 'gpu':
        device = select_device('gpu')
        from parstats.aggregate.backends.gpu import GPUComputeBackend
        return GPUComputeBackend(device=device, max_group_size=max_group_size)

    raise ValidationError(f"Unknown backend: {backend!r}")


def describe(
    data: ArrayLike | AggregateDesign,
    *,
    backend: BackendChoice | ComputeBackend = 'auto',
    max_group_size: int | None = None,
) -> AggregateSolution:
    """
    Compute sum, mean, min, max, variance, standard deviation and
    histogram-estimated quartiles with data-parallel kernels.

    Parameters
    ----------
    data : array-like or AggregateDesign
        1D values, at least one, all finite. Converted to float32.
    backend : str or ComputeBackend
        'auto', 'cpu', 'gpu', or a backend instance.
    max_group_size : int, optional
        Override the device's work-group limit. Ignored when a backend
        instance is passed.

    Returns
    -------
    AggregateSolution

    Raises
    ------
    ValidationError
        If the input is empty, non-finite, or not 1D. Raised before any
        dispatch.
    DispatchError
        If the backend fails; the pipeline is aborted with no partial result.
    """
    design = _ensure_design(data)
    be = _get_backend(backend, max_group_size)

    values = design.values
    n = design.n
    logger.info("describe: %d values on %s", n, be.name)

    timer = Timer(sync=be.synchronize)
    timer.start()

    with ExecutionContext(be) as ctx:
        with timer.section('sum'):
            total = tree_reduce(ctx, values, 'add', label='Sum')
        mean = total / n

        with timer.section('max'):
            maximum = tree_reduce(ctx, values, 'max', label='Max')
        with timer.section('min'):
            minimum = tree_reduce(ctx, values, 'min', label='Min')

        with timer.section('variance'):
            deviations = transform(ctx, values, mean, 'squared_deviation', label='DSQ')
            ssd = tree_reduce(ctx, deviations, 'add', label='SSD')
        variance = ssd / n
        std_dev = math.sqrt(variance)

        with timer.section('histogram'):
            histogram = build_histogram(ctx, values, minimum, maximum, label='Bucket')
        with timer.section('percentiles'):
            markers = percentile_markers(histogram, n)

    timer.stop()

    params = AggregateParams(
        n=n,
        sum=total,
        mean=mean,
        minimum=minimum,
        maximum=maximum,
        variance=variance,
        std_dev=std_dev,
        p25=markers.p25,
        median=markers.median,
        p75=markers.p75,
        histogram=histogram,
    )

    result = Result(
        params=params,
        info={
            'n': n,
            'source': design.source,
            'pad_block': PAD_BLOCK,
            'bins_per_unit': BINS_PER_UNIT,
            'n_bins': histogram.n_bins,
            'dispatches': [record.as_dict() for record in ctx.records],
        },
        timing=timer.result(),
        backend_name=be.name,
        warnings=tuple(ctx.warnings),
    )

    logger.info(
        "describe: %d dispatches in %.6fs", len(ctx.records), timer.elapsed,
    )
    return AggregateSolution(_result=result, _design=design)
