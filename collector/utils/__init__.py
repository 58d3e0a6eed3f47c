"""Utility functions and helpers for the Node Resource Collector.

Modules:
    platform: Platform detection used for provider selection
    procfs: Parsers for the Linux /proc accounting files
    formatting: Unit conversion and display formatting
"""

from .formatting import (
    bytes_to_gb,
    bytes_to_mb,
    clamp_percentage,
    format_bytes,
    format_percentage,
    kb_to_mb,
)
from .platform import PlatformUtils

__all__ = [
    "PlatformUtils",
    "bytes_to_gb",
    "bytes_to_mb",
    "clamp_percentage",
    "format_bytes",
    "format_percentage",
    "kb_to_mb",
]
