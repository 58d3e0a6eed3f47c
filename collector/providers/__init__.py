"""Platform-specific resource providers.

Each provider family has a Windows and a Linux implementation behind a
common interface. Reads return a :class:`Reading` carrying OK, DEGRADED or
FATAL status instead of raising.

Modules:
    base: Reading result type and collector exceptions
    cpu: System-wide CPU utilization
    memory: System-wide committed memory
    process: Per-process CPU and private working set
    factory: Platform selection and the ProviderSet handle
"""

from .base import (
    CollectorError,
    ProviderReadError,
    Reading,
    ReadStatus,
    SamplingError,
    UnsupportedPlatformError,
)
from .cpu import CpuDeltaState, CpuProvider, LinuxCpuProvider, WindowsCpuProvider
from .factory import ProviderFactory, ProviderSet
from .memory import LinuxMemoryProvider, MemoryProvider, WindowsMemoryProvider
from .process import LinuxProcessProvider, ProcessResourceProvider, WindowsProcessProvider

__all__ = [
    "CollectorError",
    "CpuDeltaState",
    "CpuProvider",
    "LinuxCpuProvider",
    "LinuxMemoryProvider",
    "LinuxProcessProvider",
    "MemoryProvider",
    "ProcessResourceProvider",
    "ProviderFactory",
    "ProviderReadError",
    "ProviderSet",
    "ReadStatus",
    "Reading",
    "SamplingError",
    "UnsupportedPlatformError",
    "WindowsCpuProvider",
    "WindowsMemoryProvider",
    "WindowsProcessProvider",
]
