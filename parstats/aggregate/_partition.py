"""
Work partitioning for kernel dispatch.

Picks the work-group size for a dispatch: the largest divisor of the
problem size reachable by stripping prime factors in ascending order that
does not exceed the device limit.
"""

from __future__ import annotations

from dataclasses import dataclass

from parstats.core.validation import check_positive_int


@dataclass(frozen=True)
class PartitionPlan:
    """
    Partitioning decision for one dispatch.

    Invariant: partition_size divides problem_size and
    partition_size <= device_limit.
    """
    problem_size: int
    partition_size: int
    device_limit: int

    @property
    def n_groups(self) -> int:
        return self.problem_size // self.partition_size


def choose_partition(problem_size: int, device_limit: int) -> int:
    """
    Largest cofactor of problem_size that fits within device_limit.

    Prime factors are divided out smallest first; the first remaining
    cofactor that is <= device_limit is returned. This is not always the
    largest divisor under the limit: (30, 6) strips 2 then 3 and gives 5.
    problem_size itself is returned when it already fits.

    Parameters
    ----------
    problem_size : int
        Number of elements in the dispatch, >= 1.
    device_limit : int
        Maximum work-group size reported by the device, >= 1.

    Returns
    -------
    int
        A divisor of problem_size in [1, device_limit]. Returns 1 when no
        cofactor fits, e.g. a prime problem_size above the limit; this is a
        valid but slow partitioning.

    Raises
    ------
    ValidationError
        If either argument is not an integer >= 1.

    Examples
    --------
    >>> choose_partition(12, 5)
    3
    >>> choose_partition(1024, 256)
    256
    >>> choose_partition(17, 4)
    1
    """
    problem_size = check_positive_int(problem_size, 'problem_size')
    device_limit = check_positive_int(device_limit, 'device_limit')

    n = problem_size
    d = 2
    while n > device_limit:
        if d * d > n:
            # n is prime and above the limit; its only smaller cofactor is 1
            return 1
        if n % d == 0:
            n //= d
        else:
            d += 1
    return n


def plan_partition(problem_size: int, device_limit: int) -> PartitionPlan:
    """choose_partition() packaged as a PartitionPlan record."""
    return PartitionPlan(
        problem_size=problem_size,
        partition_size=choose_partition(problem_size, device_limit),
        device_limit=device_limit,
    )
