"""Node hardware collection.

This module assembles the node-wide :class:`HardwareSample` for a cycle
from the CPU and memory providers plus the mounted disk volumes. It only
collects data; timing and dispatch belong to the sampling loop.
"""

# Standard library imports
import logging
from typing import List, Optional, Tuple

# Third-party imports
import psutil

# Local imports
from collector.core.snapshot import DiskVolume, HardwareSample
from collector.providers.cpu import CpuProvider
from collector.providers.memory import MemoryProvider
from collector.utils.formatting import bytes_to_gb, clamp_percentage, format_bytes, format_percentage

logger = logging.getLogger(__name__)


class DiskCollector:
    """Collects per-volume disk sizes.

    Volumes that cannot be queried (removable drives without media,
    mounts we lack permission for) are skipped.

    Example:
        >>> disk = DiskCollector()
        >>> for volume in disk.get_volumes():
        ...     print(f"{volume.name}: {volume.available_gb}/{volume.total_gb} GB free")
    """

    def __init__(self, all_partitions: bool = False):
        """Initialize disk collector.

        Args:
            all_partitions: Include pseudo and duplicate filesystems.
        """
        self.all_partitions = all_partitions

    def get_volumes(self) -> Tuple[DiskVolume, ...]:
        """Get size information for every mounted volume.

        Returns:
            Tuple of DiskVolume, sizes truncated to whole gigabytes.
        """
        volumes: List[DiskVolume] = []
        try:
            partitions = psutil.disk_partitions(all=self.all_partitions)
        except OSError as e:
            logger.error(f"Error listing disk partitions: {e}")
            return ()

        seen = set()
        for partition in partitions:
            if partition.mountpoint in seen:
                continue
            seen.add(partition.mountpoint)
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except (PermissionError, OSError) as e:
                logger.debug(f"Skipping volume {partition.mountpoint}: {e}")
                continue

            volumes.append(
                DiskVolume(
                    name=partition.mountpoint,
                    total_gb=int(bytes_to_gb(usage.total)),
                    available_gb=int(bytes_to_gb(usage.free)),
                )
            )

        return tuple(volumes)


class HardwareCollector:
    """Collects the node-wide hardware sample.

    Each metric is read once per call. A degraded reading contributes 0 and
    its name is listed in ``HardwareSample.degraded``; a FATAL reading raises.

    Attributes:
        cpu: CPU utilization provider.
        memory: Committed memory provider.
        disk: Disk volume collector.

    Example:
        >>> providers = ProviderFactory().create()
        >>> hardware = HardwareCollector(providers.cpu, providers.memory)
        >>> sample = hardware.collect()
        >>> print(f"CPU: {sample.cpu_percent}%")
    """

    def __init__(
        self,
        cpu: CpuProvider,
        memory: MemoryProvider,
        disk: Optional[DiskCollector] = None,
    ):
        self.cpu = cpu
        self.memory = memory
        self.disk = disk or DiskCollector()

    def collect(self) -> HardwareSample:
        """Collect CPU, memory and disk readings in one pass.

        Returns:
            HardwareSample for this cycle.

        Raises:
            SamplingError: If any reading was FATAL.
        """
        readings = {
            "cpu": self.cpu.next_value(),
            "total_memory": self.memory.total_bytes(),
            "committed_memory": self.memory.committed_bytes(),
        }

        degraded = []
        for name, reading in readings.items():
            reading.unwrap()
            if reading.is_degraded:
                degraded.append(name)
                logger.warning(f"Degraded {name} reading: {reading.reason}")

        total = int(readings["total_memory"].value)
        committed = int(readings["committed_memory"].value)
        percent_used = clamp_percentage(committed / total * 100) if total > 0 else 0.0

        sample = HardwareSample(
            cpu_percent=round(clamp_percentage(readings["cpu"].value), 2),
            total_memory_bytes=max(0, total),
            committed_memory_bytes=max(0, committed),
            percent_memory_used=round(percent_used, 2),
            disks=self.disk.get_volumes(),
            degraded=tuple(degraded),
        )
        logger.debug(
            f"Hardware: cpu={format_percentage(sample.cpu_percent)} committed={format_bytes(committed)} "
            f"of {format_bytes(total)} volumes={len(sample.disks)}"
        )
        return sample
