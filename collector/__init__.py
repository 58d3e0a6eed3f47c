"""Node Resource Collector.

Samples node and per-process resource usage and delivers snapshots to the
cluster aggregator.

Packages:
    providers: Platform metric sources and the provider factory
    core: Configuration, snapshot model, placement, transport and dispatch
    collectors: Node hardware collection
    monitors: The periodic sampling loop
    utils: Platform detection, /proc parsing and unit helpers
"""

__version__ = "0.1.0"
