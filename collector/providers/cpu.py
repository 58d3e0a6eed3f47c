"""System-wide CPU utilization providers.

Two implementations share the :class:`CpuProvider` interface:

    LinuxCpuProvider    - derives utilization from /proc/uptime deltas
    WindowsCpuProvider  - reads psutil's "% processor time, all cores" counter

Both return a :class:`~collector.providers.base.Reading` whose value is
clamped to [0, 100].
"""

import abc
import logging
from dataclasses import dataclass
from typing import Optional

import psutil

from collector.providers.base import ProviderReadError, Reading
from collector.utils.formatting import clamp_percentage
from collector.utils.platform import PlatformUtils
from collector.utils.procfs import PROC_ROOT, PathLike, read_uptime

logger = logging.getLogger(__name__)


class CpuProvider(abc.ABC):
    """Instantaneous system-wide CPU utilization as a percentage."""

    @abc.abstractmethod
    def next_value(self) -> Reading:
        """Return the current CPU utilization reading."""


@dataclass
class CpuDeltaState:
    """Counters remembered between two Linux CPU reads.

    Owned by exactly one :class:`LinuxCpuProvider`; it is mutated on every
    read and is never handed out.
    """

    previous_uptime_seconds: float = 0.0
    previous_idle_seconds: float = 0.0
    last_computed_value: float = 0.0


class LinuxCpuProvider(CpuProvider):
    """CPU utilization from successive /proc/uptime samples.

    /proc/uptime holds the seconds since boot and the idle seconds summed over
    all cores. Between two reads::

        utilization = 100 - (delta_idle / delta_uptime / cores * 100)

    When no time has elapsed since the last read (same uptime) the previous
    result is returned unchanged. The first read measures the average since
    boot.

    Note:
        Reads mutate the provider's delta state. Use one instance per caller;
        two callers sharing an instance will each see the other's interval.

    Example:
        >>> cpu = LinuxCpuProvider()
        >>> reading = cpu.next_value()
        >>> if reading.is_ok:
        ...     print(f"CPU: {reading.value:.1f}%")
    """

    def __init__(
        self,
        cpu_count: Optional[int] = None,
        proc_root: PathLike = PROC_ROOT,
    ):
        """Initialize the provider.

        Args:
            cpu_count: Logical core count (detected when None).
            proc_root: Directory laid out like /proc.
        """
        self.cpu_count = cpu_count or PlatformUtils().get_cpu_count()
        self.proc_root = proc_root
        self._state = CpuDeltaState()
        logger.debug(f"LinuxCpuProvider initialized with {self.cpu_count} core(s)")

    def next_value(self) -> Reading:
        try:
            uptime, idle = read_uptime(self.proc_root)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read CPU accounting from {self.proc_root}/uptime: {e}")
            return Reading.degraded(
                "cpu accounting source unreadable",
                ProviderReadError(f"uptime: {e}"),
            )

        state = self._state
        delta_uptime = uptime - state.previous_uptime_seconds

        if delta_uptime == 0:
            return Reading.ok(state.last_computed_value)

        if delta_uptime < 0:
            # Counters went backwards (new boot namespace); restart from here.
            logger.debug(
                f"Uptime decreased from {state.previous_uptime_seconds} to {uptime}, "
                "resetting CPU delta state"
            )
            state.previous_uptime_seconds = uptime
            state.previous_idle_seconds = idle
            return Reading.ok(state.last_computed_value)

        delta_idle = idle - state.previous_idle_seconds
        utilization = 100 - (delta_idle / delta_uptime / self.cpu_count * 100)

        state.previous_uptime_seconds = uptime
        state.previous_idle_seconds = idle
        state.last_computed_value = clamp_percentage(utilization)

        return Reading.ok(state.last_computed_value)


class WindowsCpuProvider(CpuProvider):
    """CPU utilization from the "% Processor Time (_Total)" counter.

    psutil's system-wide counter compares against the previous call, so the
    first value after creation is meaningless. It is read and thrown away in
    the constructor; every later call returns the latest reading.
    """

    def __init__(self):
        """Create the counter and discard its warm-up value."""
        warm_up = psutil.cpu_percent(interval=None)
        logger.debug(f"WindowsCpuProvider discarded warm-up reading {warm_up}")

    def next_value(self) -> Reading:
        try:
            value = psutil.cpu_percent(interval=None)
        except OSError as e:
            logger.warning(f"Could not read processor time counter: {e}")
            return Reading.degraded("processor time counter unreadable", e)
        return Reading.ok(clamp_percentage(value))
