"""
GPU backend for the aggregation kernels using PyTorch.

Supports CUDA (Linux/Windows) and MPS (macOS Apple Silicon). Buffers are
float32 / int64 tensors resident on the device; reduction passes operate on
strided views of a single tensor so no pass copies the buffer back to the
host. Dispatch durations come from CUDA events, or from a synchronised
wall clock on MPS.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable
import time

import numpy as np
from numpy.typing import NDArray

from parstats.core.compute.device import GPU_MAX_GROUP_SIZE, DeviceInfo
from parstats.core.exceptions import DispatchError, KernelBuildError
from parstats.core.protocols import KERNEL_NAMES
from parstats.core.validation import check_positive_int


@dataclass
class GPUEvent:
    """Pending dispatch: CUDA start/end events, or a wall-clock start on MPS."""
    kernel: str
    start: Any
    end: Any = None


class GPUComputeBackend:
    """
    GPU backend for the aggregation kernels.

    Parameters
    ----------
    device : DeviceInfo, optional
        Device info from select_device(). If None, auto-selects CUDA then MPS.
    max_group_size : int, optional
        Work-group limit reported for every kernel. Defaults to the device's.
    """

    def __init__(
        self,
        device: DeviceInfo | None = None,
        max_group_size: int | None = None,
    ):
        import torch

        self._torch = torch

        if device is not None:
            if device.device_type == 'cuda':
                self.device = torch.device(f'cuda:{device.device_index or 0}')
                self.device_name = device.name
            elif device.device_type == 'mps':
                self.device = torch.device('mps')
                self.device_name = 'Apple Silicon GPU (MPS)'
            else:
                raise ValueError(f"GPUComputeBackend requires GPU device, got {device.device_type}")
            default_limit = device.max_group_size
        else:
            if torch.cuda.is_available():
                self.device = torch.device('cuda')
                self.device_name = torch.cuda.get_device_properties(0).name
            elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
                self.device = torch.device('mps')
                self.device_name = 'Apple Silicon GPU (MPS)'
            else:
                raise RuntimeError(
                    "No GPU available. Use backend='cpu' instead."
                )
            default_limit = GPU_MAX_GROUP_SIZE

        if max_group_size is None:
            max_group_size = default_limit
        self.max_group_size = check_positive_int(max_group_size, 'max_group_size')

        self._dtypes = {
            np.dtype(np.float32): torch.float32,
            np.dtype(np.int64): torch.int64,
        }
        self._reducers: dict[str, tuple[Callable[..., Any], float]] = {
            'reduce_add': (torch.sum, 0.0),
            'reduce_min': (torch.amin, float('inf')),
            'reduce_max': (torch.amax, float('-inf')),
        }
        self._kernels: dict[str, Callable[..., None]] = {
            'reduce_add': self._reduce,
            'reduce_min': self._reduce,
            'reduce_max': self._reduce,
            'diff_squared': self._diff_squared,
            'histogram': self._histogram,
        }

    @property
    def name(self) -> str:
        return f'gpu_{self.device.type}_aggregate'

    @property
    def _is_cuda(self) -> bool:
        return self.device.type == 'cuda'

    def _kernel(self, kernel: str) -> Callable[..., None]:
        if kernel not in self._kernels:
            raise KernelBuildError(
                f"{self.name}: no kernel named '{kernel}'",
                kernel=kernel,
                backend_name=self.name,
                build_log=f"available kernels: {', '.join(sorted(KERNEL_NAMES))}",
            )
        return self._kernels[kernel]

    def _torch_dtype(self, dtype: np.dtype | type) -> Any:
        key = np.dtype(dtype)
        if key not in self._dtypes:
            raise DispatchError(
                f"{self.name}: unsupported buffer dtype {key}",
                backend_name=self.name,
                diagnostic=f"supported: {sorted(str(d) for d in self._dtypes)}",
            )
        return self._dtypes[key]

    # --- Capability interface ---

    def device_limit(self, kernel: str) -> int:
        self._kernel(kernel)
        return self.max_group_size

    def upload(self, array: NDArray[Any]) -> Any:
        host = np.array(array, copy=True)
        return self._torch.from_numpy(host).to(self.device)

    def allocate(self, size: int, dtype: np.dtype | type, fill: float = 0) -> Any:
        return self._torch.full(
            (size,), fill, dtype=self._torch_dtype(dtype), device=self.device
        )

    def dispatch(self, kernel: str, global_size: int, group_size: int, *args: Any) -> GPUEvent:
        fn = self._kernel(kernel)
        if global_size < 1 or group_size < 1:
            raise DispatchError(
                f"{self.name}: invalid NDRange for '{kernel}' "
                f"(global={global_size}, group={group_size})",
                kernel=kernel,
                backend_name=self.name,
                diagnostic='global and group sizes must be >= 1',
            )
        torch = self._torch
        if self._is_cuda:
            event = GPUEvent(
                kernel=kernel,
                start=torch.cuda.Event(enable_timing=True),
                end=torch.cuda.Event(enable_timing=True),
            )
            event.start.record()
            fn(kernel, global_size, group_size, *args)
            event.end.record()
        else:
            self.synchronize()
            event = GPUEvent(kernel=kernel, start=time.perf_counter_ns())
            fn(kernel, global_size, group_size, *args)
        return event

    def wait(self, event: GPUEvent) -> int:
        if self._is_cuda:
            event.end.synchronize()
            # elapsed_time is in milliseconds
            return int(event.start.elapsed_time(event.end) * 1e6)
        self.synchronize()
        return time.perf_counter_ns() - event.start

    def read_back(self, buffer: Any, size: int | None = None) -> NDArray[Any]:
        if size is not None:
            buffer = buffer[:size]
        return buffer.detach().cpu().numpy().copy()

    def release(self, buffer: Any) -> None:
        buffer.untyped_storage().resize_(0)

    def synchronize(self) -> None:
        if self._is_cuda:
            self._torch.cuda.synchronize(self.device)
        elif self.device.type == 'mps':
            self._torch.mps.synchronize()

    # --- Kernels ---

    def _reduce(
        self,
        kernel: str,
        global_size: int,
        group_size: int,
        buffer: Any,
        stride: int,
    ) -> None:
        op, identity = self._reducers[kernel]
        live = buffer[: global_size * stride : stride]
        n_groups = -(-global_size // group_size)
        if n_groups * group_size != global_size:
            groups = self._torch.full(
                (n_groups * group_size,), identity,
                dtype=buffer.dtype, device=buffer.device,
            )
            groups[:global_size] = live
        else:
            groups = live
        partials = op(groups.reshape(n_groups, group_size), dim=1)
        step = group_size * stride
        buffer[: n_groups * step : step] = partials

    def _diff_squared(
        self,
        kernel: str,
        global_size: int,
        group_size: int,
        buffer: Any,
        parameter: np.float32,
    ) -> None:
        view = buffer[:global_size]
        view.sub_(float(parameter)).square_()

    def _histogram(
        self,
        kernel: str,
        global_size: int,
        group_size: int,
        values: Any,
        bins: Any,
        minimum: np.float32,
        bins_per_unit: int,
    ) -> None:
        torch = self._torch
        scaled = (values[:global_size] - float(minimum)) * float(bins_per_unit)
        index = torch.floor(scaled).to(torch.int64).clamp_(0, bins.numel() - 1)
        bins.add_(torch.bincount(index, minlength=bins.numel()))
