"""Unit tests for platform detection.

Example Run:
    pytest tests/unit/collector/utils/test_platform.py -v
"""

from unittest.mock import patch

import pytest

from collector.utils.platform import PlatformUtils


class TestPlatformUtils:
    """Test suite for PlatformUtils class."""

    @pytest.mark.parametrize(
        "system_platform, expected",
        [("linux", "linux"), ("win32", "windows"), ("darwin", "unknown"), ("freebsd13", "unknown")],
    )
    def test_get_platform(self, system_platform, expected):
        """Test platform family detection from sys.platform values."""
        assert PlatformUtils(system_platform).get_platform() == expected

    def test_is_linux_and_is_windows(self):
        """Test the convenience predicates."""
        assert PlatformUtils("linux").is_linux() is True
        assert PlatformUtils("linux").is_windows() is False
        assert PlatformUtils("win32").is_windows() is True

    @patch("collector.utils.platform.psutil.cpu_count")
    def test_get_cpu_count_uses_psutil(self, mock_cpu_count):
        """Test the logical core count comes from psutil and is cached."""
        mock_cpu_count.return_value = 8
        utils = PlatformUtils("linux")

        assert utils.get_cpu_count() == 8
        assert utils.get_cpu_count() == 8
        mock_cpu_count.assert_called_once_with(logical=True)

    @patch("collector.utils.platform.os.cpu_count", return_value=None)
    @patch("collector.utils.platform.psutil.cpu_count", return_value=None)
    def test_get_cpu_count_never_zero(self, mock_psutil_count, mock_os_count):
        """Test an undetectable core count falls back to 1."""
        assert PlatformUtils("linux").get_cpu_count() == 1

    @patch("collector.utils.platform.platform.release", return_value="10")
    def test_get_os_version_windows(self, mock_release):
        """Test the Windows version string."""
        assert PlatformUtils("win32").get_os_version() == "Windows 10"
