"""Core infrastructure for the Node Resource Collector.

Modules:
    config: Configuration file loading and validation
    snapshot: Snapshot data model and payload serialization
    placement: Sources for the deployed-process mapping
    messaging: MQTT transport to the aggregator
    dispatch: Bounded fire-and-forget snapshot dispatch
"""

from .config import ConfigError, Settings, load_settings
from .dispatch import SnapshotDispatcher
from .messaging import ConnectionState, MqttTransport, TransportClient, connect_with_retry
from .placement import PlacementSource, ProcessNamePlacement, StaticPlacement
from .snapshot import (
    DiskVolume,
    HardwareSample,
    ProcessSample,
    ProcessTotals,
    ResourceSnapshot,
    deserialize_snapshot,
    serialize_snapshot,
)

__all__ = [
    "ConfigError",
    "ConnectionState",
    "DiskVolume",
    "HardwareSample",
    "MqttTransport",
    "PlacementSource",
    "ProcessNamePlacement",
    "ProcessSample",
    "ProcessTotals",
    "ResourceSnapshot",
    "Settings",
    "SnapshotDispatcher",
    "StaticPlacement",
    "TransportClient",
    "connect_with_retry",
    "deserialize_snapshot",
    "load_settings",
    "serialize_snapshot",
]
