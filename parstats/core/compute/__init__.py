"""
Shared compute infrastructure for parstats.

This module provides hardware detection, timing utilities, the execution
context that scopes device buffers, and tolerance tiers.

IMPORTANT: This is NOT where kernel implementations live. Those go in
aggregate/backends/. This module contains shared infrastructure only.

Submodules:
    device: Hardware detection and device selection
    timing: Execution timing utilities
    context: ExecutionContext and per-dispatch profiling records
    tolerances: Float32 tolerance tiers
"""

from parstats.core.compute.device import (
    DeviceInfo,
    detect_gpu,
    get_cpu_info,
    list_devices,
    select_device,
)
from parstats.core.compute.timing import Timer, timed
from parstats.core.compute.context import DispatchRecord, ExecutionContext

__all__ = [
    # Device detection
    "DeviceInfo",
    "detect_gpu",
    "get_cpu_info",
    "list_devices",
    "select_device",
    # Timing
    "Timer",
    "timed",
    # Dispatch scoping
    "DispatchRecord",
    "ExecutionContext",
]
