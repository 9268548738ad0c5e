"""
Core protocols for parstats.

The aggregation components (tree reduction, elementwise transform,
histogram) never touch a device API directly. They depend only on the
ComputeBackend capability defined here, which each backend (numpy CPU,
PyTorch CUDA/MPS) implements once.

We use Protocol (structural typing) rather than ABC (nominal typing) so a
backend only has to provide the methods, not inherit from anything.

Kernel argument conventions (all kernels operate in place on device buffers):

    reduce_add / reduce_min / reduce_max  (buffer, stride)
        Live element k sits at buffer[k * stride] for k < global_size.
        Group j combines live elements [j*group_size, (j+1)*group_size)
        (the last group may be ragged and is padded with the neutral
        element) and writes the result into the group's first live slot,
        buffer[j * group_size * stride]. group_size is the fan-in and is
        always >= 2 while more than one element is live.

    diff_squared  (buffer, parameter)
        buffer[i] = (buffer[i] - parameter) ** 2 for i < global_size.

    histogram  (values, bins, minimum, bins_per_unit)
        Atomically increments bins[floor((values[i] - minimum) * bins_per_unit)]
        for i < global_size. bins must be pre-zeroed by the caller.
"""

from typing import Protocol, Any, runtime_checkable

import numpy as np
from numpy.typing import NDArray


KERNEL_NAMES = frozenset({
    'reduce_add',
    'reduce_min',
    'reduce_max',
    'diff_squared',
    'histogram',
})


@runtime_checkable
class ComputeBackend(Protocol):
    """
    Capability interface for data-parallel kernel execution.

    Backends are stateless apart from the device handle they were built
    with; buffer ownership lives in the ExecutionContext that allocated
    them.
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{device}_aggregate'
        Examples: 'cpu_aggregate', 'gpu_cuda_aggregate'
        """
        ...

    def device_limit(self, kernel: str) -> int:
        """Maximum work-group size the device accepts for a kernel."""
        ...

    def upload(self, array: NDArray[Any]) -> Any:
        """Copy a host array into a new device buffer."""
        ...

    def allocate(self, size: int, dtype: np.dtype | type, fill: float = 0) -> Any:
        """Allocate a device buffer of `size` elements filled with `fill`."""
        ...

    def dispatch(self, kernel: str, global_size: int, group_size: int, *args: Any) -> Any:
        """
        Enqueue one kernel invocation over global_size elements.

        Returns:
            An opaque event handle to pass to wait()

        Raises:
            KernelBuildError: If the kernel is not provided by this backend
            DispatchError: If the device fails to execute the kernel
        """
        ...

    def wait(self, event: Any) -> int:
        """Block until the dispatch has completed; return its duration in ns."""
        ...

    def read_back(self, buffer: Any, size: int | None = None) -> NDArray[Any]:
        """Copy the first `size` elements (default: all) of a device buffer to the host."""
        ...

    def release(self, buffer: Any) -> None:
        """Free a device buffer."""
        ...

    def synchronize(self) -> None:
        """Block until all outstanding device work has finished."""
        ...
