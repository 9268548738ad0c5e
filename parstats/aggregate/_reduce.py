"""
Multi-pass tree reduction.

Reduces a float32 buffer of any length to a single scalar with repeated
dispatches of a combining kernel (add, min or max). Each pass combines
groups of live elements in place; the survivors are spread `stride`
elements apart in the same device buffer, so pass k+1 reads exactly what
pass k wrote.

    pass 0   stride=1   remaining=32   group=16   -> 2 partials at [0], [16]
    pass 1   stride=16  remaining=2    group=2    -> 1 result at [0]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray

from parstats.core.compute.context import ExecutionContext
from parstats.core.exceptions import ValidationError
from parstats.aggregate._partition import choose_partition

logger = logging.getLogger(__name__)

Combine = Literal['add', 'min', 'max']

# Inputs are padded to a multiple of this so the first pass has a uniform shape
PAD_BLOCK = 16

NEUTRAL_ELEMENTS: dict[str, float] = {
    'add': 0.0,
    'min': np.inf,
    'max': -np.inf,
}

REDUCE_KERNELS: dict[str, str] = {
    'add': 'reduce_add',
    'min': 'reduce_min',
    'max': 'reduce_max',
}

_DEFAULT_LABELS = {'add': 'Sum', 'min': 'Min', 'max': 'Max'}


@dataclass
class ReductionState:
    """Bookkeeping between passes. Terminal when remaining == 1."""
    stride: int
    remaining: int

    @property
    def done(self) -> bool:
        return self.remaining == 1

    def advance(self, group_size: int) -> None:
        # A ragged last group still yields one partial
        self.remaining = -(-self.remaining // group_size)
        self.stride *= group_size


def _check_combine(combine: str) -> None:
    if combine not in NEUTRAL_ELEMENTS:
        raise ValidationError(
            f"Unknown combine: {combine!r}. Must be 'add', 'min', or 'max'."
        )


def pad_to_block(
    values: NDArray[np.float32],
    combine: Combine,
    block: int = PAD_BLOCK,
) -> NDArray[np.float32]:
    """
    Copy of `values` extended to a multiple of `block` with the combine's
    neutral element (0 for add, +inf for min, -inf for max).

    The input array is never modified, even when no padding is needed.
    """
    _check_combine(combine)
    n = len(values)
    padded_len = -(-n // block) * block
    padded = np.full(padded_len, NEUTRAL_ELEMENTS[combine], dtype=np.float32)
    padded[:n] = values
    return padded


def _group_size(ctx: ExecutionContext, remaining: int, limit: int) -> int:
    group = choose_partition(remaining, limit)
    if group > 1:
        return group
    # No cofactor fits: fall back to the widest fan-in the limit allows
    # (at least 2) so the pass still shrinks the live set. The kernel pads
    # a short last group with the neutral element.
    fallback = max(2, min(limit, remaining))
    if fallback > limit:
        ctx.warn(
            f"work-group limit {limit} cannot shrink {remaining} elements; "
            f"using groups of {fallback}, exceeding the device limit"
        )
    elif remaining % fallback:
        ctx.warn(
            f"{remaining} elements do not split into work-groups of at most "
            f"{limit}; using ragged groups of {fallback}"
        )
    return fallback


def tree_reduce(
    ctx: ExecutionContext,
    values: ArrayLike,
    combine: Combine,
    *,
    label: str | None = None,
) -> float:
    """
    Reduce `values` to one scalar with the `combine` kernel.

    Parameters
    ----------
    ctx : ExecutionContext
        Open execution context; owns the reduction buffer.
    values : array-like
        Non-empty 1D data, converted to float32. Never modified.
    combine : {'add', 'min', 'max'}
        Commutative, associative combining operation.
    label : str, optional
        Name used in the dispatch records. Defaults to 'Sum', 'Min', 'Max'.

    Returns
    -------
    float
        The reduced value.

    Raises
    ------
    ValidationError
        If `values` is empty or `combine` is unknown.
    DispatchError
        If the backend fails on any pass.
    """
    _check_combine(combine)
    data = np.asarray(values, dtype=np.float32).ravel()
    if data.size == 0:
        raise ValidationError("tree_reduce: values must contain at least 1 element")

    kernel = REDUCE_KERNELS[combine]
    label = label or _DEFAULT_LABELS[combine]
    padded = pad_to_block(data, combine)

    limit = ctx.device_limit(kernel)
    state = ReductionState(stride=1, remaining=len(padded))
    buffer = ctx.upload(padded)
    try:
        while not state.done:
            group_size = _group_size(ctx, state.remaining, limit)
            # Blocks until the pass has finished: the next pass reads its output
            ctx.run(label, kernel, state.remaining, group_size, buffer, state.stride)
            state.advance(group_size)
        result = ctx.read_back(buffer, 1)[0]
    finally:
        ctx.release(buffer)

    logger.debug("%s: reduced %d elements to %r", label, data.size, float(result))
    return float(result)
