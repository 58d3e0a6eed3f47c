"""Unit tests for the committed memory providers.

Key Testing Patterns:
    - Drive LinuxMemoryProvider with a fake /proc/meminfo
    - Mock psutil memory counters for WindowsMemoryProvider
    - Verify missing fields degrade instead of raising

Example Run:
    pytest tests/unit/collector/providers/test_memory.py -v
"""

from unittest.mock import MagicMock, patch

import pytest

from collector.providers.base import ProviderReadError
from collector.providers.memory import (
    LinuxMemoryProvider,
    WindowsMemoryProvider,
    committed_bytes_from_meminfo,
)

MEMINFO = {
    "MemTotal": 1000,
    "MemFree": 200,
    "MemAvailable": 300,
    "SwapTotal": 100,
    "SwapFree": 40,
}


class TestCommittedBytesFromMeminfo:
    """Test suite for the committed memory formula."""

    def test_formula(self):
        """Test (1000 - 300 - 200 + (100 - 40)) kB is 675840 bytes."""
        assert committed_bytes_from_meminfo(MEMINFO) == 675840

    def test_floored_at_zero(self):
        """Test an inconsistent snapshot never yields negative bytes."""
        meminfo = dict(MEMINFO, MemAvailable=900, MemFree=800)

        assert committed_bytes_from_meminfo(meminfo) == 0

    def test_missing_field_raises(self):
        """Test a missing field names what is missing."""
        meminfo = dict(MEMINFO)
        del meminfo["SwapFree"]

        with pytest.raises(ProviderReadError, match="SwapFree"):
            committed_bytes_from_meminfo(meminfo)


class TestLinuxMemoryProvider:
    """Test suite for LinuxMemoryProvider class."""

    def test_committed_bytes(self, fake_proc):
        """Test committed bytes from a complete meminfo file."""
        fake_proc.write_meminfo(**MEMINFO)
        provider = LinuxMemoryProvider(proc_root=fake_proc.root)

        reading = provider.committed_bytes()

        assert reading.is_ok
        assert reading.value == 675840

    def test_total_bytes(self, fake_proc):
        """Test total bytes is MemTotal converted from kB."""
        fake_proc.write_meminfo(**MEMINFO)
        provider = LinuxMemoryProvider(proc_root=fake_proc.root)

        assert provider.total_bytes().value == 1000 * 1024

    def test_missing_swap_fields_degrade(self, fake_proc):
        """Test missing SwapTotal/SwapFree degrade the read to 0."""
        fake_proc.write_meminfo(MemTotal=1000, MemFree=200, MemAvailable=300)
        provider = LinuxMemoryProvider(proc_root=fake_proc.root)

        reading = provider.committed_bytes()

        assert reading.is_degraded
        assert reading.value == 0.0
        assert "SwapTotal" in reading.reason

    def test_unreadable_file_degrades(self, fake_proc):
        """Test a missing meminfo file degrades both reads."""
        provider = LinuxMemoryProvider(proc_root=fake_proc.root)

        assert provider.committed_bytes().is_degraded
        assert provider.total_bytes().is_degraded

    def test_recovers_after_degraded_read(self, fake_proc):
        """Test a degraded read does not poison the next one."""
        provider = LinuxMemoryProvider(proc_root=fake_proc.root)
        assert provider.committed_bytes().is_degraded

        fake_proc.write_meminfo(**MEMINFO)

        assert provider.committed_bytes().value == 675840

    def test_non_utf8_bytes_do_not_break_parsing(self, fake_proc):
        """Test stray non-UTF-8 bytes in meminfo leave the known fields readable."""
        lines = [f"{name}:\t{value:>12} kB" for name, value in MEMINFO.items()]
        raw = "\n".join(lines).encode() + b"\nBogus\xff\xfe:\t      1 kB\n"
        (fake_proc.root / "meminfo").write_bytes(raw)
        provider = LinuxMemoryProvider(proc_root=fake_proc.root)

        reading = provider.committed_bytes()

        assert reading.is_ok
        assert reading.value == 675840


class TestWindowsMemoryProvider:
    """Test suite for WindowsMemoryProvider class."""

    @patch("collector.providers.memory.psutil.swap_memory")
    @patch("collector.providers.memory.psutil.virtual_memory")
    def test_committed_includes_page_file(self, mock_virtual, mock_swap):
        """Test committed bytes is physical used plus page file used."""
        mock_virtual.return_value = MagicMock(used=6 * 1024**3, total=16 * 1024**3)
        mock_swap.return_value = MagicMock(used=1024**3)
        provider = WindowsMemoryProvider()

        assert provider.committed_bytes().value == 7 * 1024**3
        assert provider.total_bytes().value == 16 * 1024**3

    @patch("collector.providers.memory.psutil.virtual_memory")
    def test_counter_error_degrades(self, mock_virtual):
        """Test an unreadable counter yields a DEGRADED reading."""
        mock_virtual.side_effect = OSError("no counters")
        provider = WindowsMemoryProvider()

        assert provider.committed_bytes().is_degraded
        assert provider.total_bytes().is_degraded
