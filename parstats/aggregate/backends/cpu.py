"""
CPU reference backend for the aggregation kernels.

Each kernel is executed with numpy over the whole dispatch at once: work
groups are materialised as a (n_groups, group_size) view and combined along
axis 1, so each pass produces the same partials a device would produce
running one work-group per group.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable
import time

import numpy as np
from numpy.typing import NDArray

from parstats.core.compute.device import CPU_MAX_GROUP_SIZE, DeviceInfo, get_cpu_info
from parstats.core.exceptions import DispatchError, KernelBuildError
from parstats.core.protocols import KERNEL_NAMES
from parstats.core.validation import check_positive_int


@dataclass(frozen=True)
class CPUEvent:
    """Completed dispatch; CPU kernels run synchronously."""
    kernel: str
    start_ns: int
    end_ns: int


_REDUCERS: dict[str, tuple[np.ufunc, float]] = {
    'reduce_add': (np.add, 0.0),
    'reduce_min': (np.minimum, np.inf),
    'reduce_max': (np.maximum, -np.inf),
}


class CPUComputeBackend:
    """
    CPU backend for the aggregation kernels.

    Parameters
    ----------
    max_group_size : int, optional
        Work-group limit reported for every kernel. Defaults to the CPU
        device's limit. Small values force many reduction passes.
    device : DeviceInfo, optional
        Device info from select_device('cpu').
    """

    def __init__(
        self,
        max_group_size: int | None = None,
        device: DeviceInfo | None = None,
    ):
        self.device_info = device if device is not None else get_cpu_info()
        if max_group_size is None:
            max_group_size = self.device_info.max_group_size or CPU_MAX_GROUP_SIZE
        self.max_group_size = check_positive_int(max_group_size, 'max_group_size')
        self._kernels: dict[str, Callable[..., None]] = {
            'reduce_add': self._reduce,
            'reduce_min': self._reduce,
            'reduce_max': self._reduce,
            'diff_squared': self._diff_squared,
            'histogram': self._histogram,
        }

    @property
    def name(self) -> str:
        return 'cpu_aggregate'

    def _kernel(self, kernel: str) -> Callable[..., None]:
        if kernel not in self._kernels:
            raise KernelBuildError(
                f"{self.name}: no kernel named '{kernel}'",
                kernel=kernel,
                backend_name=self.name,
                build_log=f"available kernels: {', '.join(sorted(KERNEL_NAMES))}",
            )
        return self._kernels[kernel]

    # --- Capability interface ---

    def device_limit(self, kernel: str) -> int:
        self._kernel(kernel)
        return self.max_group_size

    def upload(self, array: NDArray[Any]) -> NDArray[Any]:
        return np.array(array, copy=True)

    def allocate(self, size: int, dtype: np.dtype | type, fill: float = 0) -> NDArray[Any]:
        return np.full(size, fill, dtype=dtype)

    def dispatch(self, kernel: str, global_size: int, group_size: int, *args: Any) -> CPUEvent:
        fn = self._kernel(kernel)
        if global_size < 1 or group_size < 1:
            raise DispatchError(
                f"{self.name}: invalid NDRange for '{kernel}' "
                f"(global={global_size}, group={group_size})",
                kernel=kernel,
                backend_name=self.name,
                diagnostic='global and group sizes must be >= 1',
            )
        start = time.perf_counter_ns()
        fn(kernel, global_size, group_size, *args)
        return CPUEvent(kernel=kernel, start_ns=start, end_ns=time.perf_counter_ns())

    def wait(self, event: CPUEvent) -> int:
        return event.end_ns - event.start_ns

    def read_back(self, buffer: NDArray[Any], size: int | None = None) -> NDArray[Any]:
        if size is None:
            return buffer.copy()
        return buffer[:size].copy()

    def release(self, buffer: NDArray[Any]) -> None:
        # Host memory is reclaimed once the context drops its reference
        pass

    def synchronize(self) -> None:
        pass

    # --- Kernels ---

    def _reduce(
        self,
        kernel: str,
        global_size: int,
        group_size: int,
        buffer: NDArray[np.float32],
        stride: int,
    ) -> None:
        ufunc, identity = _REDUCERS[kernel]
        live = buffer[: global_size * stride : stride]
        n_groups = -(-global_size // group_size)
        if n_groups * group_size != global_size:
            groups = np.full(n_groups * group_size, identity, dtype=buffer.dtype)
            groups[:global_size] = live
        else:
            groups = live
        partials = ufunc.reduce(groups.reshape(n_groups, group_size), axis=1)
        step = group_size * stride
        buffer[: n_groups * step : step] = partials

    def _diff_squared(
        self,
        kernel: str,
        global_size: int,
        group_size: int,
        buffer: NDArray[np.float32],
        parameter: np.float32,
    ) -> None:
        view = buffer[:global_size]
        np.subtract(view, parameter, out=view)
        np.square(view, out=view)

    def _histogram(
        self,
        kernel: str,
        global_size: int,
        group_size: int,
        values: NDArray[np.float32],
        bins: NDArray[np.int64],
        minimum: np.float32,
        bins_per_unit: int,
    ) -> None:
        scaled = (values[:global_size] - minimum) * np.float32(bins_per_unit)
        index = np.floor(scaled).astype(np.int64)
        np.clip(index, 0, len(bins) - 1, out=index)
        # Unbuffered: repeated indices each count
        np.add.at(bins, index, 1)
