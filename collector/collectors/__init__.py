"""Data collection classes for the Node Resource Collector.

Collectors only gather data; they don't handle timing, serialization or
publishing, which keeps them easy to test in isolation.

Modules:
    system: Node hardware collection (CPU, memory, disk volumes)
"""

from .system import DiskCollector, HardwareCollector

__all__ = [
    "DiskCollector",
    "HardwareCollector",
]
