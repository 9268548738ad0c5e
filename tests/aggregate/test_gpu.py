"""
GPU backend tests for the aggregation pipeline.

Validates GPU results against the CPU reference backend.
Skipped if no GPU is available.
"""

from __future__ import annotations

import numpy as np
import pytest

try:
    import torch
    HAS_GPU = torch.cuda.is_available() or (
        hasattr(torch.backends, 'mps') and torch.backends.mps.is_available()
    )
except ImportError:
    HAS_GPU = False

pytestmark = pytest.mark.skipif(not HAS_GPU, reason="No GPU available")

from parstats.aggregate import describe, tree_reduce, build_histogram
from parstats.core.compute.context import ExecutionContext
from parstats.core.compute.tolerances import GPU_FP32, select_tolerance


@pytest.fixture
def gpu_ctx():
    from parstats.aggregate.backends.gpu import GPUComputeBackend
    with ExecutionContext(GPUComputeBackend()) as ctx:
        yield ctx


class TestGPUvsCPU:
    """Compare GPU results against CPU reference for all statistics."""

    def test_describe_moments(self, temperatures):
        cpu = describe(temperatures, backend='cpu')
        gpu = describe(temperatures, backend='gpu')
        tol = select_tolerance(gpu.backend_name, len(temperatures))
        np.testing.assert_allclose(gpu.mean, cpu.mean, rtol=tol.rtol)
        np.testing.assert_allclose(gpu.variance, cpu.variance, rtol=tol.rtol)
        assert gpu.minimum == cpu.minimum
        assert gpu.maximum == cpu.maximum

    def test_describe_histogram(self, temperatures):
        cpu = describe(temperatures, backend='cpu')
        gpu = describe(temperatures, backend='gpu')
        np.testing.assert_array_equal(gpu.histogram.counts, cpu.histogram.counts)
        assert gpu.percentiles == cpu.percentiles

    def test_backend_name(self):
        assert describe([1.0, 2.0], backend='gpu').backend_name.startswith('gpu_')

    @pytest.mark.parametrize("limit", [4, 13])
    def test_small_group_limit(self, rng, limit):
        values = rng.normal(size=4099).astype(np.float32)
        gpu = describe(values, backend='gpu', max_group_size=limit)
        cpu = describe(values, backend='cpu', max_group_size=limit)
        np.testing.assert_allclose(gpu.sum, cpu.sum, rtol=GPU_FP32.rtol, atol=1e-3)


class TestGPUKernels:

    def test_min_max(self, gpu_ctx, rng):
        values = rng.uniform(-5.0, 5.0, size=16 * 1024 + 1).astype(np.float32)
        assert tree_reduce(gpu_ctx, values, 'min') == float(values.min())
        assert tree_reduce(gpu_ctx, values, 'max') == float(values.max())

    def test_histogram_total(self, gpu_ctx, temperatures):
        lo, hi = float(temperatures.min()), float(temperatures.max())
        assert build_histogram(gpu_ctx, temperatures, lo, hi).total == len(temperatures)
