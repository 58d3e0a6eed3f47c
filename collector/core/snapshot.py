"""Snapshot data model and wire serialization.

A :class:`ResourceSnapshot` bundles one cycle's measurements for a node:
one :class:`HardwareSample` and one :class:`ProcessSample` per deployed
process. All records are frozen; the sampling loop builds a snapshot once
and hands it to the dispatcher, which serializes it exactly once.

The payload is UTF-8 JSON. The aggregator treats it as opaque bytes.

Payload example::

    {
        "timestamp": 1760680800000.0,
        "node_name": "node-01",
        "hardware": {
            "cpu_percent": 37.5,
            "total_memory_bytes": 17179869184,
            "committed_memory_bytes": 9663676416,
            "percent_memory_used": 56.25,
            "disks": [{"name": "/", "total_gb": 476, "available_gb": 210}],
            "degraded": []
        },
        "processes": [
            {"process_id": 4242, "service_id": "fabric:/App/Web",
             "cpu_percent": 3.1, "private_working_set_mb": 212.4,
             "memory_percent": 1.3, "degraded": false}
        ]
    }
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Tuple

PAYLOAD_ENCODING = "utf-8"


@dataclass(frozen=True)
class DiskVolume:
    """Size of one mounted volume, in whole gigabytes."""

    name: str
    total_gb: int
    available_gb: int


@dataclass(frozen=True)
class HardwareSample:
    """Node-wide hardware readings for one cycle.

    Attributes:
        cpu_percent: System CPU utilization in [0, 100].
        total_memory_bytes: Installed physical memory.
        committed_memory_bytes: Memory committed by the OS.
        percent_memory_used: committed / total, capped at 100.
        disks: Volumes whose usage could be read.
        degraded: Names of metrics ("cpu", "committed_memory", ...) whose
            reading was degraded to 0 this cycle.
    """

    cpu_percent: float
    total_memory_bytes: int
    committed_memory_bytes: int
    percent_memory_used: float
    disks: Tuple[DiskVolume, ...] = ()
    degraded: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProcessSample:
    """Readings for one deployed process.

    A process that exited mid-cycle is still reported, with zero CPU and
    working set and ``degraded`` set.
    """

    process_id: int
    service_id: str
    cpu_percent: float
    private_working_set_mb: float
    memory_percent: float = 0.0
    degraded: bool = False


@dataclass(frozen=True)
class ProcessTotals:
    """Sum of all sampled processes (the node's share used by services)."""

    cpu_percent: float
    private_working_set_mb: float
    memory_percent: float
    process_count: int


@dataclass(frozen=True)
class ResourceSnapshot:
    """One cycle's bundled hardware and process measurements for a node."""

    timestamp: float
    node_name: str
    hardware: HardwareSample
    processes: Tuple[ProcessSample, ...] = field(default_factory=tuple)

    @property
    def is_degraded(self) -> bool:
        """True if any reading in the snapshot was degraded."""
        return bool(self.hardware.degraded) or any(p.degraded for p in self.processes)

    def process_totals(self) -> ProcessTotals:
        """Sum CPU and private working set over all sampled processes.

        Returns:
            ProcessTotals; memory_percent is relative to total memory and is
            0 when total memory is unknown.
        """
        cpu = sum(p.cpu_percent for p in self.processes)
        working_set_mb = sum(p.private_working_set_mb for p in self.processes)
        memory_percent = 0.0
        total_mb = self.hardware.total_memory_bytes / 1024**2
        if total_mb > 0:
            memory_percent = min(100.0, working_set_mb / total_mb * 100)
        return ProcessTotals(
            cpu_percent=round(min(100.0, cpu), 2),
            private_working_set_mb=round(working_set_mb, 2),
            memory_percent=round(memory_percent, 2),
            process_count=len(self.processes),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain JSON-compatible types."""
        data = asdict(self)
        data["hardware"]["disks"] = [asdict(d) for d in self.hardware.disks]
        data["hardware"]["degraded"] = list(self.hardware.degraded)
        data["processes"] = [asdict(p) for p in self.processes]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceSnapshot":
        """Rebuild a snapshot from :meth:`to_dict` output.

        Raises:
            KeyError: If a required key is missing.
        """
        hw = data["hardware"]
        hardware = HardwareSample(
            cpu_percent=hw["cpu_percent"],
            total_memory_bytes=hw["total_memory_bytes"],
            committed_memory_bytes=hw["committed_memory_bytes"],
            percent_memory_used=hw["percent_memory_used"],
            disks=tuple(DiskVolume(**d) for d in hw.get("disks", [])),
            degraded=tuple(hw.get("degraded", [])),
        )
        return cls(
            timestamp=data["timestamp"],
            node_name=data["node_name"],
            hardware=hardware,
            processes=tuple(ProcessSample(**p) for p in data.get("processes", [])),
        )


def serialize_snapshot(snapshot: ResourceSnapshot) -> bytes:
    """Serialize a snapshot to the aggregator payload format."""
    return json.dumps(snapshot.to_dict(), separators=(",", ":")).encode(PAYLOAD_ENCODING)


def deserialize_snapshot(payload: bytes) -> ResourceSnapshot:
    """Parse an aggregator payload back into a snapshot.

    Raises:
        ValueError: If the payload is not valid JSON.
        KeyError: If a required key is missing.
    """
    return ResourceSnapshot.from_dict(json.loads(payload.decode(PAYLOAD_ENCODING)))
