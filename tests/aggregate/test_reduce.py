"""
Tests for the multi-pass tree reduction.

Validates:
    - Sum / min / max against float64 references at many device limits
    - Neutral-element padding never changes the result
    - Pass structure (record count, shrinking global sizes)
    - Input buffer is never modified
"""

import math

import numpy as np
import pytest

from parstats.aggregate import (
    PAD_BLOCK,
    ReductionState,
    pad_to_block,
    tree_reduce,
)
from parstats.core.compute.tolerances import EPSILON_32, EXACT
from parstats.core.exceptions import ValidationError


def _sum_atol(values):
    """Error bound for a float32 tree sum: depth * eps * sum(|x|)."""
    depth = max(1, math.ceil(math.log2(max(len(values), 2))))
    return 4 * depth * EPSILON_32 * float(np.abs(values.astype(np.float64)).sum()) + 1e-6


# ═══════════════════════════════════════════════════════════════════════
# Padding and pass bookkeeping
# ═══════════════════════════════════════════════════════════════════════


class TestPadToBlock:

    @pytest.mark.parametrize("combine, neutral", [
        ('add', 0.0), ('min', np.inf), ('max', -np.inf),
    ])
    def test_neutral_padding(self, combine, neutral):
        values = np.arange(5, dtype=np.float32)
        padded = pad_to_block(values, combine)
        assert len(padded) == PAD_BLOCK
        np.testing.assert_array_equal(padded[:5], values)
        assert np.all(padded[5:] == neutral)

    def test_multiple_is_copied(self):
        values = np.ones(32, dtype=np.float32)
        padded = pad_to_block(values, 'add')
        assert len(padded) == 32
        assert padded is not values
        padded[0] = 7.0
        assert values[0] == 1.0

    def test_unknown_combine(self):
        with pytest.raises(ValidationError, match="Unknown combine"):
            pad_to_block(np.ones(3, dtype=np.float32), 'mul')


class TestReductionState:

    def test_advance(self):
        state = ReductionState(stride=1, remaining=32)
        state.advance(16)
        assert (state.stride, state.remaining) == (16, 2)
        state.advance(2)
        assert state.done

    def test_ragged_advance_rounds_up(self):
        state = ReductionState(stride=1, remaining=17)
        state.advance(4)
        assert (state.stride, state.remaining) == (4, 5)


# ═══════════════════════════════════════════════════════════════════════
# Reduction results
# ═══════════════════════════════════════════════════════════════════════


class TestTreeReduce:

    @pytest.mark.parametrize("limit", [1, 2, 4, 13, 17, 256, 100000])
    @pytest.mark.parametrize("n", [1, 15, 16, 17, 1000, 16 * 1024 + 1])
    def test_sum_any_limit(self, make_ctx, rng, n, limit):
        values = rng.normal(0.0, 10.0, size=n).astype(np.float32)
        result = tree_reduce(make_ctx(limit), values, 'add')
        expected = values.astype(np.float64).sum()
        np.testing.assert_allclose(result, expected, rtol=0, atol=_sum_atol(values))

    @pytest.mark.parametrize("limit", [1, 4, 13, 256])
    @pytest.mark.parametrize("n", [1, 16 * 1024, 16 * 1024 + 1])
    def test_min_max_exact(self, make_ctx, rng, n, limit):
        """Selection reductions return an input element exactly."""
        values = rng.uniform(-50.0, 50.0, size=n).astype(np.float32)
        ctx = make_ctx(limit)
        np.testing.assert_allclose(
            tree_reduce(ctx, values, 'min'), values.min(), rtol=EXACT.rtol, atol=EXACT.atol,
        )
        np.testing.assert_allclose(
            tree_reduce(ctx, values, 'max'), values.max(), rtol=EXACT.rtol, atol=EXACT.atol,
        )

    def test_all_negative_max(self, ctx):
        """Padding with 0 would wrongly win here; -inf padding does not."""
        values = np.array([-3.5, -1.25, -9.0], dtype=np.float32)
        assert tree_reduce(ctx, values, 'max') == -1.25

    def test_all_positive_min(self, ctx):
        values = np.array([3.5, 1.25, 9.0], dtype=np.float32)
        assert tree_reduce(ctx, values, 'min') == 1.25

    def test_single_element(self, ctx):
        values = np.array([42.5], dtype=np.float32)
        for combine in ('add', 'min', 'max'):
            assert tree_reduce(ctx, values, combine) == 42.5

    def test_integer_sum_exact(self, make_ctx):
        values = np.arange(1, 1001, dtype=np.float32)
        assert tree_reduce(make_ctx(8), values, 'add') == 500500.0

    def test_input_unchanged(self, ctx, rng):
        values = rng.normal(size=333).astype(np.float32)
        before = values.copy()
        tree_reduce(ctx, values, 'add')
        tree_reduce(ctx, values, 'max')
        np.testing.assert_array_equal(values, before)

    def test_idempotent(self, ctx, temperatures):
        first = tree_reduce(ctx, temperatures, 'add')
        second = tree_reduce(ctx, temperatures, 'add')
        assert first == second

    def test_accepts_list(self, ctx):
        assert tree_reduce(ctx, [1.0, 2.0, 3.0], 'add') == 6.0


class TestPasses:

    def test_record_per_pass(self, make_ctx):
        ctx = make_ctx(16)
        tree_reduce(ctx, np.ones(256, dtype=np.float32), 'add', label='Sum')
        assert [r.global_size for r in ctx.records] == [256, 16]
        assert [r.group_size for r in ctx.records] == [16, 16]
        assert all(r.label == 'Sum' for r in ctx.records)

    def test_global_size_shrinks(self, make_ctx, rng):
        ctx = make_ctx(4)
        tree_reduce(ctx, rng.normal(size=5000).astype(np.float32), 'min')
        sizes = [r.global_size for r in ctx.records]
        assert sizes == sorted(sizes, reverse=True)
        assert len(set(sizes)) == len(sizes)
        assert all(r.group_size <= 4 for r in ctx.records)

    def test_prime_cofactor_uses_ragged_groups(self, make_ctx):
        """16 * 17 elements under limit 4: 272 -> 68 -> 17, then 17 has no
        divisor in (1, 4] and is finished with ragged groups."""
        ctx = make_ctx(4)
        values = np.arange(272, dtype=np.float32)
        assert tree_reduce(ctx, values, 'add') == float(values.sum())
        assert any("ragged groups" in w for w in ctx.warnings)

    def test_limit_one_still_terminates(self, make_ctx):
        ctx = make_ctx(1)
        assert tree_reduce(ctx, np.ones(48, dtype=np.float32), 'add') == 48.0
        assert all(r.group_size == 2 for r in ctx.records)
        assert any("exceeding the device limit" in w for w in ctx.warnings)


class TestErrors:

    def test_empty(self, ctx):
        with pytest.raises(ValidationError, match="at least 1 element"):
            tree_reduce(ctx, np.array([], dtype=np.float32), 'add')
        assert ctx.records == []

    def test_unknown_combine(self, ctx):
        with pytest.raises(ValidationError, match="Unknown combine"):
            tree_reduce(ctx, np.ones(4, dtype=np.float32), 'product')
