"""
Elementwise transforms over a value buffer.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from parstats.core.compute.context import ExecutionContext
from parstats.core.exceptions import ValidationError
from parstats.aggregate._partition import choose_partition

UnaryOp = Literal['squared_deviation']

UNARY_KERNELS: dict[str, str] = {
    'squared_deviation': 'diff_squared',
}


def transform(
    ctx: ExecutionContext,
    values: ArrayLike,
    parameter: float,
    op: UnaryOp = 'squared_deviation',
    *,
    label: str = 'DSQ',
) -> NDArray[np.float32]:
    """
    Apply a unary kernel to every element in one dispatch.

    'squared_deviation' computes (x - parameter) ** 2.

    Returns a new float32 array of the same length; `values` is uploaded as a
    copy and never modified.
    """
    if op not in UNARY_KERNELS:
        raise ValidationError(
            f"Unknown elementwise op: {op!r}. Must be one of {sorted(UNARY_KERNELS)}"
        )
    data = np.asarray(values, dtype=np.float32).ravel()
    n = data.size
    if n == 0:
        raise ValidationError("transform: values must contain at least 1 element")

    kernel = UNARY_KERNELS[op]
    group_size = choose_partition(n, ctx.device_limit(kernel))
    buffer = ctx.upload(data)
    try:
        ctx.run(label, kernel, n, group_size, buffer, np.float32(parameter))
        return ctx.read_back(buffer, n)
    finally:
        ctx.release(buffer)
