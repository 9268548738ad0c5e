"""
Tests for work-group size selection.
"""

import pytest

from parstats.aggregate import PartitionPlan, choose_partition, plan_partition
from parstats.core.exceptions import ValidationError


class TestChoosePartition:

    @pytest.mark.parametrize("size, limit, expected", [
        (12, 5, 3),
        (1024, 256, 256),
        (17, 4, 1),
        (30, 6, 5),
        (48, 64, 48),
        (1, 1, 1),
        (4096, 1, 1),
    ])
    def test_known_values(self, size, limit, expected):
        assert choose_partition(size, limit) == expected

    def test_fits_returns_problem_size(self):
        """A problem no larger than the limit is one work-group."""
        assert choose_partition(256, 256) == 256
        assert choose_partition(7, 1024) == 7

    @pytest.mark.parametrize("size", [1, 2, 16, 97, 360, 1000, 16 * 1009, 65536])
    @pytest.mark.parametrize("limit", [1, 2, 4, 13, 256, 1024])
    def test_divides_and_fits(self, size, limit):
        g = choose_partition(size, limit)
        assert 1 <= g <= limit
        assert size % g == 0

    def test_prime_above_limit(self):
        assert choose_partition(1009, 256) == 1

    @pytest.mark.parametrize("size, limit", [(0, 4), (-16, 4), (16, 0)])
    def test_rejects_non_positive(self, size, limit):
        with pytest.raises(ValidationError, match="must be >= 1"):
            choose_partition(size, limit)

    def test_rejects_float(self):
        with pytest.raises(ValidationError):
            choose_partition(16.0, 4)


class TestPlanPartition:

    def test_plan_fields(self):
        plan = plan_partition(1024, 256)
        assert plan == PartitionPlan(problem_size=1024, partition_size=256, device_limit=256)
        assert plan.n_groups == 4
