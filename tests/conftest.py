"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from parstats.core.compute.context import ExecutionContext
from parstats.aggregate.backends.cpu import CPUComputeBackend


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def make_ctx():
    """Factory for CPU execution contexts with a given work-group limit."""
    contexts = []

    def _make(max_group_size=256):
        ctx = ExecutionContext(CPUComputeBackend(max_group_size=max_group_size))
        contexts.append(ctx)
        return ctx

    yield _make
    for ctx in contexts:
        ctx.close()


@pytest.fixture
def ctx(make_ctx):
    """CPU execution context with the default work-group limit."""
    return make_ctx()


@pytest.fixture
def temperatures(rng):
    """Temperature-like readings: one decimal place, both signs."""
    return np.round(rng.normal(9.5, 6.0, size=5000), 1).astype(np.float32)
