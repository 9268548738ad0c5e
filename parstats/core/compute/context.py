"""
Execution context for kernel dispatch.

An ExecutionContext is the explicit replacement for global device / queue
state: it is created around one pipeline run, passed into every component
operation, owns every device buffer allocated through it, and collects one
profiling record per dispatch. Buffers are released when the context exits,
whether the run succeeded or raised.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, asdict
from typing import Any, Iterator
import logging

import numpy as np
from numpy.typing import NDArray

from parstats.core.exceptions import DispatchError
from parstats.core.protocols import ComputeBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchRecord:
    """
    Profiling record for one kernel dispatch.

    Attributes:
        label: Pipeline step that issued the dispatch ('Sum', 'SSD', ...)
        kernel: Kernel name
        global_size: Number of elements the dispatch covered
        group_size: Work-group size used
        duration_ns: Device execution time in nanoseconds
    """
    label: str
    kernel: str
    global_size: int
    group_size: int
    duration_ns: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class ExecutionContext:
    """
    Scoped owner of device buffers and dispatch records for one run.

    Usage:
        with ExecutionContext(CPUComputeBackend()) as ctx:
            total = tree_reduce(ctx, values, 'add')
        ctx.records  # one DispatchRecord per pass
    """

    def __init__(self, backend: ComputeBackend):
        self.backend = backend
        self.records: list[DispatchRecord] = []
        self.warnings: list[str] = []
        self._buffers: list[Any] = []

    def __enter__(self) -> ExecutionContext:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def backend_name(self) -> str:
        return self.backend.name

    def device_limit(self, kernel: str) -> int:
        return self.backend.device_limit(kernel)

    @contextmanager
    def _backend_call(self, action: str, kernel: str | None = None) -> Iterator[None]:
        """
        Wrap backend failures in DispatchError with the backend name and,
        for dispatches, the kernel. DispatchErrors pass through unchanged.
        """
        try:
            yield
        except DispatchError:
            raise
        except (RuntimeError, ValueError, IndexError, MemoryError) as e:
            raise DispatchError(
                f"{self.backend.name}: {action} failed: {e}",
                kernel=kernel,
                backend_name=self.backend.name,
                diagnostic=str(e),
            ) from e

    def upload(self, array: NDArray[Any]) -> Any:
        """Copy a host array to the device; the buffer is owned by this context."""
        with self._backend_call(f"upload of {len(array)} values"):
            buffer = self.backend.upload(array)
        self._buffers.append(buffer)
        return buffer

    def allocate(self, size: int, dtype: np.dtype | type, fill: float = 0) -> Any:
        with self._backend_call(f"allocation of {size} {np.dtype(dtype)} elements"):
            buffer = self.backend.allocate(size, dtype, fill)
        self._buffers.append(buffer)
        return buffer

    def read_back(self, buffer: Any, size: int | None = None) -> NDArray[Any]:
        with self._backend_call("read back"):
            return self.backend.read_back(buffer, size)

    def warn(self, message: str) -> None:
        """Record a non-fatal issue once; it ends up in Result.warnings."""
        if message not in self.warnings:
            self.warnings.append(message)
            logger.warning(message)

    def run(
        self,
        label: str,
        kernel: str,
        global_size: int,
        group_size: int,
        *args: Any,
    ) -> DispatchRecord:
        """
        Dispatch a kernel and block until it completes.

        Backend exceptions that are not already DispatchErrors are wrapped
        with the kernel and backend name; nothing is retried.
        """
        with self._backend_call(f"kernel '{kernel}'", kernel=kernel):
            event = self.backend.dispatch(kernel, global_size, group_size, *args)
            duration_ns = self.backend.wait(event)

        record = DispatchRecord(
            label=label,
            kernel=kernel,
            global_size=global_size,
            group_size=group_size,
            duration_ns=int(duration_ns),
        )
        self.records.append(record)
        logger.debug(
            "%s execution [ns]: %d (kernel=%s, global=%d, group=%d)",
            label, record.duration_ns, kernel, global_size, group_size,
        )
        return record

    def release(self, buffer: Any) -> None:
        """Release one buffer early (e.g. between pipeline steps)."""
        for i, owned in enumerate(self._buffers):
            if owned is buffer:
                del self._buffers[i]
                self.backend.release(buffer)
                return

    def close(self) -> None:
        """Release every buffer still owned by this context."""
        while self._buffers:
            self.backend.release(self._buffers.pop())
