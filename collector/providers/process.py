"""Per-process CPU and private working set providers.

CPU usage is measured the same way on both platforms: psutil's per-process
CPU time delta between two calls, divided by the core count so that a
process saturating the whole machine reads 100%.

The private working set differs per platform:

    LinuxProcessProvider    - VmRSS minus RssFile from /proc/<pid>/status
    WindowsProcessProvider  - psutil's unique set size ("Working Set - Private")

A process that exits between enumeration and sampling is an expected race:
its readings degrade to 0 and the cycle carries on. Unexpected exceptions
are returned as FATAL readings so they end the cycle.
"""

import abc
import logging
from typing import Dict, Iterable, Optional

import psutil

from collector.core.snapshot import ProcessSample
from collector.providers.base import Reading
from collector.utils.formatting import bytes_to_mb, clamp_percentage, kb_to_mb
from collector.utils.platform import PlatformUtils
from collector.utils.procfs import PROC_ROOT, PathLike, parse_status

logger = logging.getLogger(__name__)

REASON_EXITED = "process exited"
REASON_ACCESS_DENIED = "permission denied"
REASON_INVALID_PID = "invalid process id"
REASON_UNSUPPORTED = "not supported on this platform"


def _valid_pid(pid) -> bool:
    return isinstance(pid, int) and not isinstance(pid, bool) and pid > 0


def classify_process_error(pid, error: Exception) -> Reading:
    """Turn an exception raised while reading a process into a Reading.

    Exited processes, permission problems, bad arguments and unsupported
    platforms are expected and degrade to 0. Anything else is FATAL.

    Args:
        pid: Process id being read.
        error: The exception that was raised.

    Returns:
        A DEGRADED or FATAL reading.
    """
    if isinstance(error, psutil.NoSuchProcess):
        logger.info(f"Process {pid} has already exited")
        return Reading.degraded(REASON_EXITED, error)
    if isinstance(error, (psutil.AccessDenied, PermissionError)):
        logger.warning(f"Access denied reading process {pid}: {error}")
        return Reading.degraded(REASON_ACCESS_DENIED, error)
    if isinstance(error, (ValueError, TypeError)):
        logger.warning(f"Invalid process id {pid!r}: {error}")
        return Reading.degraded(REASON_INVALID_PID, error)
    if isinstance(error, NotImplementedError):
        logger.warning(f"Process metric not supported for {pid}: {error}")
        return Reading.degraded(REASON_UNSUPPORTED, error)

    logger.error(f"Unexpected error reading process {pid}: {error!r}")
    return Reading.fatal(error, f"unexpected error reading process {pid}: {error!r}")


class ProcessResourceProvider(abc.ABC):
    """Base class for per-process resource providers.

    The CPU tracker for each pid is a cached ``psutil.Process``; psutil keeps
    the previous CPU times on that object, so the cache is what makes the
    per-call delta work. Call :meth:`forget` each cycle with the pids still
    deployed so trackers for departed processes are released.

    Attributes:
        cpu_count: Logical cores used to normalise CPU usage.
        warm_up_interval: Seconds spent priming a tracker on first sight of
            a pid.
    """

    def __init__(self, cpu_count: Optional[int] = None, warm_up_interval: float = 0.05):
        self.cpu_count = cpu_count or PlatformUtils().get_cpu_count()
        self.warm_up_interval = warm_up_interval
        self._trackers: Dict[int, psutil.Process] = {}

    def cpu_percent(self, pid: int) -> Reading:
        """Get the share of total machine CPU used by a process.

        The first call for a pid blocks for ``warm_up_interval`` to obtain a
        baseline; later calls report usage since the previous call.

        Args:
            pid: Process id.

        Returns:
            Reading with a value in [0, 100].
        """
        if not _valid_pid(pid):
            return classify_process_error(pid, ValueError(f"pid must be a positive integer, got {pid!r}"))

        try:
            tracker = self._trackers.get(pid)
            if tracker is not None and tracker.is_running():
                value = tracker.cpu_percent(interval=None)
            else:
                tracker = psutil.Process(pid)
                value = tracker.cpu_percent(interval=self.warm_up_interval)
                self._trackers[pid] = tracker
        except Exception as e:
            self._trackers.pop(pid, None)
            return classify_process_error(pid, e)

        return Reading.ok(clamp_percentage(value / self.cpu_count))

    @abc.abstractmethod
    def private_working_set_mb(self, pid: int) -> Reading:
        """Get the private working set of a process in megabytes."""

    def forget(self, active_pids: Iterable[int]) -> None:
        """Drop CPU trackers for pids that are no longer deployed.

        Args:
            active_pids: Pids sampled in the current cycle.
        """
        active = set(active_pids)
        for pid in [pid for pid in self._trackers if pid not in active]:
            del self._trackers[pid]
            logger.debug(f"Released CPU tracker for process {pid}")

    def sample(self, pid: int, service_id: str, total_memory_bytes: int = 0) -> ProcessSample:
        """Sample CPU and private working set for one process.

        If either read finds the process gone, both values are reported as 0
        so an exited process still yields a (zeroed) sample.

        Args:
            pid: Process id.
            service_id: Identifier of the service hosted by the process.
            total_memory_bytes: Installed memory, used for memory_percent.

        Returns:
            The ProcessSample for this cycle.

        Raises:
            SamplingError: If either read was FATAL.
        """
        cpu = self.cpu_percent(pid)
        cpu.unwrap()
        working_set = self.private_working_set_mb(pid)
        working_set.unwrap()

        exited = REASON_EXITED in (cpu.reason, working_set.reason)
        cpu_value = 0.0 if exited else cpu.value
        working_set_mb = 0.0 if exited else working_set.value

        memory_percent = 0.0
        if total_memory_bytes > 0:
            memory_percent = clamp_percentage(working_set_mb / bytes_to_mb(total_memory_bytes) * 100)

        return ProcessSample(
            process_id=pid,
            service_id=service_id,
            cpu_percent=round(cpu_value, 2),
            private_working_set_mb=round(working_set_mb, 2),
            memory_percent=round(memory_percent, 2),
            degraded=cpu.is_degraded or working_set.is_degraded,
        )


class LinuxProcessProvider(ProcessResourceProvider):
    """Per-process readings backed by /proc/<pid>/status."""

    def __init__(
        self,
        cpu_count: Optional[int] = None,
        warm_up_interval: float = 0.05,
        proc_root: PathLike = PROC_ROOT,
    ):
        super().__init__(cpu_count, warm_up_interval)
        self.proc_root = proc_root

    def private_working_set_mb(self, pid: int) -> Reading:
        """Estimate the private working set as VmRSS - RssFile.

        Returns a DEGRADED 0 reading, without raising, if the status file
        is gone (the process exited) or not readable by us. Only an exit
        zeroes the CPU reading in :meth:`sample`.
        """
        try:
            status = parse_status(pid, self.proc_root)
        except PermissionError as e:
            return classify_process_error(pid, e)
        if status is None:
            logger.debug(f"No status for process {pid}, assuming it exited")
            return Reading.degraded(REASON_EXITED)

        private_kb = max(0, status.vm_rss_kb - status.rss_file_kb)
        return Reading.ok(kb_to_mb(private_kb))


class WindowsProcessProvider(ProcessResourceProvider):
    """Per-process readings from the Windows process counters via psutil."""

    def private_working_set_mb(self, pid: int) -> Reading:
        """Read "Working Set - Private" for a process.

        The process name is resolved first; a process that has already exited
        is logged and reported as 0.
        """
        if not _valid_pid(pid):
            return classify_process_error(pid, ValueError(f"pid must be a positive integer, got {pid!r}"))

        try:
            process = psutil.Process(pid)
            name = process.name()
        except Exception as e:
            return classify_process_error(pid, e)

        try:
            private_bytes = process.memory_full_info().uss
        except Exception as e:
            logger.debug(f"Working Set - Private unavailable for {name} ({pid})")
            return classify_process_error(pid, e)

        return Reading.ok(bytes_to_mb(private_bytes))
