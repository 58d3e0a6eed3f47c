"""Monitoring loops for the Node Resource Collector.

Modules:
    sampling: Periodic sampling and dispatch loop
"""

from .sampling import SamplingLoop, time_until_next_tick

__all__ = [
    "SamplingLoop",
    "time_until_next_tick",
]
