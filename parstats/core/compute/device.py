"""
Hardware detection and device management.

Provides a unified interface for detecting available compute devices
and their capabilities, regardless of the underlying framework.
"""

from dataclasses import dataclass
from typing import Literal
import platform


# Work-group limits used when the framework does not report one.
# CUDA caps a thread block at 1024 threads; MPS follows the same limit.
GPU_MAX_GROUP_SIZE = 1024
CPU_MAX_GROUP_SIZE = 256


@dataclass(frozen=True)
class DeviceInfo:
    """
    Information about a compute device.

    Attributes:
        device_type: Type of device ('cpu', 'cuda', 'mps')
        device_index: Device index (None for CPU)
        name: Human-readable device name
        memory_bytes: Total device memory in bytes (None if unknown)
        max_group_size: Largest work-group size kernels may be dispatched with
    """
    device_type: Literal['cpu', 'cuda', 'mps']
    device_index: int | None
    name: str
    memory_bytes: int | None
    max_group_size: int

    def __str__(self) -> str:
        if self.device_type == 'cpu':
            return f"CPU ({self.name})"
        mem_str = ""
        if self.memory_bytes is not None:
            mem_gb = self.memory_bytes / (1024**3)
            mem_str = f", {mem_gb:.1f}GB"
        return f"{self.device_type.upper()}:{self.device_index} ({self.name}{mem_str})"

    @property
    def is_gpu(self) -> bool:
        """True if this is a GPU device."""
        return self.device_type in ('cuda', 'mps')


def _cuda_devices() -> list[DeviceInfo]:
    try:
        import torch
    except ImportError:
        return []
    if not torch.cuda.is_available():
        return []
    devices = []
    for idx in range(torch.cuda.device_count()):
        props = torch.cuda.get_device_properties(idx)
        devices.append(DeviceInfo(
            device_type='cuda',
            device_index=idx,
            name=props.name,
            memory_bytes=props.total_memory,
            max_group_size=GPU_MAX_GROUP_SIZE,
        ))
    return devices


def _mps_device() -> DeviceInfo | None:
    try:
        import torch
    except ImportError:
        return None
    if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return DeviceInfo(
            device_type='mps',
            device_index=0,
            name='Apple Silicon GPU',
            memory_bytes=None,  # MPS doesn't expose memory info easily
            max_group_size=GPU_MAX_GROUP_SIZE,
        )
    return None


def detect_gpu() -> DeviceInfo | None:
    """
    Detect available GPU, if any.

    Returns:
        DeviceInfo for the best available GPU, or None if no GPU available.

    Priority: CUDA > MPS (Apple Silicon)

    Note:
        This function imports torch lazily to avoid import overhead
        when GPU detection isn't needed.
    """
    cuda = _cuda_devices()
    if cuda:
        import torch
        current = torch.cuda.current_device()
        return next((d for d in cuda if d.device_index == current), cuda[0])
    return _mps_device()


def get_cpu_info() -> DeviceInfo:
    """
    Get CPU device info.

    Returns:
        DeviceInfo for the CPU
    """
    processor = platform.processor()
    if not processor:
        processor = platform.machine() or "Unknown CPU"

    return DeviceInfo(
        device_type='cpu',
        device_index=None,
        name=processor,
        memory_bytes=None,
        max_group_size=CPU_MAX_GROUP_SIZE,
    )


def list_devices() -> list[DeviceInfo]:
    """
    Enumerate every device a backend can be built for.

    The CPU is always listed first, followed by each CUDA device and then
    MPS if present.
    """
    devices = [get_cpu_info()]
    devices.extend(_cuda_devices())
    mps = _mps_device()
    if mps is not None:
        devices.append(mps)
    return devices


def select_device(prefer: Literal['cpu', 'gpu', 'auto'] = 'auto') -> DeviceInfo:
    """
    Select compute device based on preference and availability.

    Args:
        prefer: Device preference
            - 'cpu': Always use CPU
            - 'gpu': Require GPU (raises if unavailable)
            - 'auto': Use GPU if available, else CPU

    Returns:
        DeviceInfo for selected device

    Raises:
        RuntimeError: If 'gpu' requested but no GPU available
    """
    if prefer == 'cpu':
        return get_cpu_info()

    gpu = detect_gpu()

    if prefer == 'gpu':
        if gpu is None:
            raise RuntimeError(
                "GPU requested but no GPU available. "
                "Ensure PyTorch is installed with CUDA/MPS support."
            )
        return gpu

    return gpu if gpu is not None else get_cpu_info()
