"""
Tolerance tiers for numerical validation.

Every value buffer is float32, so reductions are compared against a float64
reference with single-precision tolerances. A tree reduction accumulates
rounding error proportional to the depth of the tree, so the summation tier
widens with log2(n).

Used by the test suite and benchmarks.
"""

from dataclasses import dataclass
import math

import numpy as np


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


EPSILON_32: float = float(np.finfo(np.float32).eps)  # ~1.19e-7

# min / max only select existing elements: exact
EXACT = ToleranceTier(
    rtol=0.0,
    atol=0.0,
    name='exact',
    description='Selection reductions (min, max) return an input element',
)

# Elementwise float32 arithmetic: a couple of ulps
FP32_ELEMENTWISE = ToleranceTier(
    rtol=4 * EPSILON_32,
    atol=1e-6,
    name='fp32_elementwise',
    description='Single float32 operation per element',
)

# GPU reductions reorder additions more aggressively than the CPU backend
GPU_FP32 = ToleranceTier(
    rtol=1e-4,
    atol=1e-5,
    name='gpu_fp32',
    description='GPU single precision, statistically equivalent to CPU',
)


def summation_tolerance(n_elements: int) -> ToleranceTier:
    """
    Tolerance for a float32 tree sum over n_elements values.

    The worst-case relative error of pairwise/tree summation grows as
    eps * depth; the depth is at most ceil(log2(n)) passes.
    """
    depth = max(1, math.ceil(math.log2(max(n_elements, 2))))
    return ToleranceTier(
        rtol=4 * depth * EPSILON_32,
        atol=1e-5,
        name='fp32_tree_sum',
        description=f'Float32 tree summation over {n_elements} values',
    )


def select_tolerance(backend_name: str, n_elements: int) -> ToleranceTier:
    """Select the summation tolerance tier for a given backend."""
    if 'gpu' in backend_name:
        return GPU_FP32
    return summation_tolerance(n_elements)
