"""Readers for the Linux /proc accounting files.

Only the handful of files the providers need are parsed here:

    /proc/uptime         - seconds since boot and cumulative idle seconds
    /proc/meminfo        - system memory totals in kB
    /proc/<pid>/status   - per-process memory fields in kB

The readers take an optional ``root`` so tests can point them at a
temporary directory laid out like /proc.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

PROC_ROOT = Path("/proc")

PathLike = Union[str, Path]

# Status fields we keep, both reported by the kernel in kB.
STATUS_FIELDS = ("VmRSS", "RssFile")


@dataclass(frozen=True)
class ProcStatus:
    """Memory fields parsed from /proc/<pid>/status (kB)."""

    pid: int
    vm_rss_kb: int = 0
    rss_file_kb: int = 0


def _read_text(path: Path) -> str:
    """Read an accounting file, replacing bytes that are not UTF-8.

    The kernel copies process names into some files unescaped, so a name
    with arbitrary bytes must not make the numeric fields unreadable.
    """
    return path.read_bytes().decode("utf-8", errors="replace")


def _leading_int(text: str) -> int:
    """Parse the leading unsigned integer of ``text`` ("  1234 kB" -> 1234).

    Raises:
        ValueError: If ``text`` does not start with a digit after whitespace.
    """
    digits = ""
    for char in text.strip():
        if not char.isdigit():
            break
        digits += char
    if not digits:
        raise ValueError(f"No integer value in {text!r}")
    return int(digits)


def read_uptime(root: PathLike = PROC_ROOT) -> Tuple[float, float]:
    """Read system uptime and cumulative idle time.

    The idle value is the sum over all cores, so on an idle N-core host it
    grows N times faster than uptime.

    Args:
        root: Directory laid out like /proc.

    Returns:
        Tuple of (uptime_seconds, idle_seconds).

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file does not hold two numbers.
    """
    text = _read_text(Path(root) / "uptime")
    parts = text.split()
    if len(parts) < 2:
        raise ValueError(f"Malformed uptime data: {text!r}")
    return float(parts[0]), float(parts[1])


def read_meminfo(root: PathLike = PROC_ROOT) -> Dict[str, int]:
    """Read /proc/meminfo into a mapping of field name to kB value.

    Lines that cannot be parsed are skipped; the kernel occasionally adds
    fields without values and callers only care about a few well known keys.

    Args:
        root: Directory laid out like /proc.

    Returns:
        Dictionary such as ``{"MemTotal": 16303412, "MemFree": 512000, ...}``.

    Raises:
        OSError: If the file cannot be read.
    """
    result: Dict[str, int] = {}
    for line in _read_text(Path(root) / "meminfo").splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        try:
            result[key.strip()] = _leading_int(value)
        except ValueError:
            logger.debug(f"Skipping unparsable meminfo line: {line.strip()}")
    return result


def parse_status(pid: int, root: PathLike = PROC_ROOT) -> Optional[ProcStatus]:
    """Parse /proc/<pid>/status.

    Args:
        pid: Process id.
        root: Directory laid out like /proc.

    Returns:
        ProcStatus, or None if the file is gone (the process has exited).
        Missing fields default to 0, which is what the kernel reports for
        kernel threads.

    Raises:
        PermissionError: If the process exists but its status is not
            readable by us.
    """
    path = Path(root) / str(pid) / "status"
    try:
        lines = _read_text(path).splitlines()
    except PermissionError:
        raise
    except OSError as e:
        logger.debug(f"Could not read {path}: {e}")
        return None

    values: Dict[str, int] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if sep and key in STATUS_FIELDS:
            try:
                values[key] = _leading_int(value)
            except ValueError:
                logger.debug(f"Skipping unparsable status line for pid {pid}: {line}")

    return ProcStatus(
        pid=pid,
        vm_rss_kb=values.get("VmRSS", 0),
        rss_file_kb=values.get("RssFile", 0),
    )
