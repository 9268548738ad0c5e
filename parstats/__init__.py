"""
parstats: data-parallel descriptive statistics for Python.

Reduces a large one-dimensional dataset to its sum, mean, extrema,
variance, standard deviation and histogram-estimated quartiles using
multi-pass tree reductions dispatched to a CPU or GPU compute backend.

Submodules:
    aggregate: The aggregation engine and describe() pipeline
    core: Exceptions, results, validation, device and timing infrastructure
"""

__version__ = "0.1.0"

from parstats import aggregate
from parstats.aggregate import AggregateDesign, describe

__all__ = [
    "__version__",
    "aggregate",
    "AggregateDesign",
    "describe",
]
