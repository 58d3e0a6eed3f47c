"""System-wide committed memory providers.

    LinuxMemoryProvider    - parses /proc/meminfo
    WindowsMemoryProvider  - uses psutil's physical and page file counters

Committed bytes is memory the OS has promised to processes, resident or
not, so it includes used swap / page file.
"""

import abc
import logging

import psutil

from collector.providers.base import ProviderReadError, Reading
from collector.utils.procfs import PROC_ROOT, PathLike, read_meminfo

logger = logging.getLogger(__name__)

MEMINFO_REQUIRED_FIELDS = ("MemTotal", "MemFree", "MemAvailable", "SwapTotal", "SwapFree")


class MemoryProvider(abc.ABC):
    """Committed and total memory in bytes."""

    @abc.abstractmethod
    def committed_bytes(self) -> Reading:
        """Return the committed memory reading in bytes."""

    @abc.abstractmethod
    def total_bytes(self) -> Reading:
        """Return the installed physical memory in bytes."""


def committed_bytes_from_meminfo(meminfo: dict) -> int:
    """Compute committed bytes from /proc/meminfo values (kB).

    Uses::

        (MemTotal - MemAvailable - MemFree + (SwapTotal - SwapFree)) * 1024

    floored at zero. An older variant of this formula left out MemAvailable;
    see DESIGN.md for why this one was kept.

    Args:
        meminfo: Mapping of meminfo field name to kB.

    Returns:
        Committed memory in bytes.

    Raises:
        ProviderReadError: If a required field is missing.

    Example:
        >>> committed_bytes_from_meminfo({
        ...     "MemTotal": 1000, "MemFree": 200, "MemAvailable": 300,
        ...     "SwapTotal": 100, "SwapFree": 40,
        ... })
        675840
    """
    missing = [name for name in MEMINFO_REQUIRED_FIELDS if name not in meminfo]
    if missing:
        raise ProviderReadError(f"meminfo is missing required field(s): {', '.join(missing)}")

    committed_kb = (
        meminfo["MemTotal"]
        - meminfo["MemAvailable"]
        - meminfo["MemFree"]
        + (meminfo["SwapTotal"] - meminfo["SwapFree"])
    )
    return max(0, committed_kb) * 1024


class LinuxMemoryProvider(MemoryProvider):
    """Memory readings parsed from /proc/meminfo.

    A missing field or unreadable file degrades only the read that hit it;
    the next call parses the file again from scratch.
    """

    def __init__(self, proc_root: PathLike = PROC_ROOT):
        self.proc_root = proc_root

    def _read(self):
        try:
            return read_meminfo(self.proc_root)
        except OSError as e:
            raise ProviderReadError(f"meminfo unreadable: {e}") from e

    def committed_bytes(self) -> Reading:
        try:
            return Reading.ok(committed_bytes_from_meminfo(self._read()))
        except ProviderReadError as e:
            logger.warning(f"Committed memory read failed: {e}")
            return Reading.degraded(str(e), e)

    def total_bytes(self) -> Reading:
        try:
            meminfo = self._read()
            if "MemTotal" not in meminfo:
                raise ProviderReadError("meminfo is missing required field(s): MemTotal")
        except ProviderReadError as e:
            logger.warning(f"Total memory read failed: {e}")
            return Reading.degraded(str(e), e)
        return Reading.ok(meminfo["MemTotal"] * 1024)


class WindowsMemoryProvider(MemoryProvider):
    """Memory readings from psutil.

    psutil has no direct "Committed Bytes" counter, so committed memory is
    the physical memory in use plus the page file in use.
    """

    def committed_bytes(self) -> Reading:
        try:
            used = psutil.virtual_memory().used
            swap_used = psutil.swap_memory().used
        except OSError as e:
            logger.warning(f"Committed memory counter unreadable: {e}")
            return Reading.degraded("committed bytes counter unreadable", e)
        return Reading.ok(max(0, used + swap_used))

    def total_bytes(self) -> Reading:
        try:
            return Reading.ok(psutil.virtual_memory().total)
        except OSError as e:
            logger.warning(f"Total memory counter unreadable: {e}")
            return Reading.degraded("total memory counter unreadable", e)
