"""
Generic result container for parstats computations.

The Result class provides a standardized envelope for aggregation results.
This enables shared tooling for timing, logging, reproducibility, and
serialization while allowing each entry point to define its own parameter
structure.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (dispatch records, device)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any
import platform

P = TypeVar('P')  # Parameter payload type


def _default_provenance() -> dict[str, Any]:
    """Library versions that produced a result."""
    import numpy as np
    from parstats import __version__

    provenance: dict[str, Any] = {
        'parstats_version': __version__,
        'numpy_version': np.__version__,
        'python_version': platform.python_version(),
    }
    try:
        import torch
        provenance['torch_version'] = torch.__version__
    except ImportError:
        pass
    return provenance


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for aggregation computations.

    Type Parameters:
        P: The parameter payload type

    Attributes:
        params: Computed statistics
        info: Structured metadata (device, dispatch records)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation
        provenance: Library versions, auto-populated if not given

    Examples:
        >>> Result(
        ...     params=AggregateParams(...),
        ...     info={'device': 'cpu', 'dispatches': [...]},
        ...     timing={'total_seconds': 0.01, 'sum': 0.002},
        ...     backend_name='cpu_aggregate'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    provenance: dict[str, Any] = field(default_factory=_default_provenance)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
