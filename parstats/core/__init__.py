"""
Core infrastructure for parstats.

This module provides shared abstractions, utilities, and backend
infrastructure used by the aggregation engine.

Key components:
    protocols: ComputeBackend capability protocol
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Device detection, timing, execution context
"""

from parstats.core.protocols import ComputeBackend, KERNEL_NAMES
from parstats.core.result import Result
from parstats.core.exceptions import (
    ParStatsError,
    ValidationError,
    DimensionError,
    DispatchError,
    KernelBuildError,
)

__all__ = [
    # Protocols
    "ComputeBackend",
    "KERNEL_NAMES",
    # Result
    "Result",
    # Exceptions
    "ParStatsError",
    "ValidationError",
    "DimensionError",
    "DispatchError",
    "KernelBuildError",
]
