"""
Tests for the elementwise transform.
"""

import numpy as np
import pytest

from parstats.aggregate import transform
from parstats.core.compute.tolerances import FP32_ELEMENTWISE
from parstats.core.exceptions import ValidationError


class TestSquaredDeviation:

    def test_known_values(self, ctx):
        values = np.array([1, 2, 3, 4, 5], dtype=np.float32)
        result = transform(ctx, values, 3.0)
        np.testing.assert_array_equal(result, [4, 1, 0, 1, 4])
        assert result.dtype == np.float32

    def test_matches_numpy(self, ctx, temperatures):
        mean = float(temperatures.mean())
        result = transform(ctx, temperatures, mean, 'squared_deviation')
        expected = (temperatures - np.float32(mean)) ** 2
        np.testing.assert_allclose(
            result, expected, rtol=FP32_ELEMENTWISE.rtol, atol=FP32_ELEMENTWISE.atol,
        )

    def test_input_unchanged(self, ctx, rng):
        values = rng.normal(size=100).astype(np.float32)
        before = values.copy()
        transform(ctx, values, 0.5)
        np.testing.assert_array_equal(values, before)

    def test_single_dispatch(self, make_ctx):
        ctx = make_ctx(4)
        transform(ctx, np.ones(1009, dtype=np.float32), 1.0, label='DSQ')
        assert len(ctx.records) == 1
        record = ctx.records[0]
        assert (record.label, record.kernel, record.global_size) == ('DSQ', 'diff_squared', 1009)
        assert record.group_size == 1


class TestErrors:

    def test_unknown_op(self, ctx):
        with pytest.raises(ValidationError, match="Unknown elementwise op"):
            transform(ctx, np.ones(4, dtype=np.float32), 0.0, 'cube')

    def test_empty(self, ctx):
        with pytest.raises(ValidationError, match="at least 1 element"):
            transform(ctx, [], 0.0)
