"""Platform detection for provider selection.

This module centralizes the host operating system checks used to pick
the Windows or Linux implementation of each resource provider, so the
rest of the code never inspects ``sys.platform`` directly.
"""

import logging
import os
import platform
import sys
from typing import Optional

import psutil

logger = logging.getLogger(__name__)


class PlatformUtils:
    """Utilities for platform detection.

    The detected platform family is cached on first use. A family of
    ``"unknown"`` is not an error here; it is up to the caller (normally
    the provider factory) to decide whether it can work with it.

    Attributes:
        _platform: Cached platform family ("linux", "windows", or "unknown").
        _os_version: Cached OS version string.
        _cpu_count: Cached logical core count.

    Example:
        >>> utils = PlatformUtils()
        >>> if utils.is_linux():
        ...     print("reading /proc")
        >>> print(f"Running on {utils.get_platform()}")
    """

    def __init__(self, system_platform: Optional[str] = None):
        """Initialize platform utilities with empty cache.

        Args:
            system_platform: Override for ``sys.platform`` (used by tests and
                by hosts that want to force a family).
        """
        self._system_platform = system_platform or sys.platform
        self._platform: Optional[str] = None
        self._os_version: Optional[str] = None
        self._cpu_count: Optional[int] = None

    def get_platform(self) -> str:
        """Get the current platform family.

        Returns:
            Platform name: "linux", "windows", or "unknown".

        Example:
            >>> PlatformUtils("linux").get_platform()
            'linux'
            >>> PlatformUtils("win32").get_platform()
            'windows'
        """
        if self._platform is None:
            if self._system_platform.startswith("linux"):
                self._platform = "linux"
            elif self._system_platform.startswith("win"):
                self._platform = "windows"
            else:
                self._platform = "unknown"
                logger.warning(f"Unknown platform: {self._system_platform}")
        return self._platform

    def is_linux(self) -> bool:
        """Check if running on Linux."""
        return self.get_platform() == "linux"

    def is_windows(self) -> bool:
        """Check if running on Windows."""
        return self.get_platform() == "windows"

    def get_cpu_count(self) -> int:
        """Get the number of logical CPU cores.

        Falls back to ``os.cpu_count()`` and finally to 1 so callers can
        always divide by the result.

        Returns:
            Logical core count, at least 1.
        """
        if self._cpu_count is None:
            count = None
            try:
                count = psutil.cpu_count(logical=True)
            except (AttributeError, OSError) as e:
                logger.debug(f"psutil could not count CPUs: {e}")
            self._cpu_count = count or os.cpu_count() or 1
        return self._cpu_count

    def get_os_version(self) -> str:
        """Get OS version string.

        On Linux, reads PRETTY_NAME from /etc/os-release first, then falls
        back to ``platform.release()``.

        Returns:
            OS version string (e.g., "Ubuntu 22.04", "Windows 10").
        """
        if self._os_version is not None:
            return self._os_version

        if self.is_linux():
            if os.path.exists("/etc/os-release"):
                try:
                    with open("/etc/os-release", encoding="utf-8") as f:
                        data = {}
                        for line in f:
                            if "=" in line:
                                key, value = line.strip().split("=", 1)
                                data[key] = value.strip('"')

                    if "PRETTY_NAME" in data:
                        self._os_version = data["PRETTY_NAME"]
                    else:
                        distro_name = data.get("NAME", "Linux")
                        distro_version = data.get("VERSION_ID", "")
                        self._os_version = f"{distro_name} {distro_version}".strip()
                    return self._os_version
                except (IOError, OSError, ValueError) as e:
                    logger.debug(f"Could not read /etc/os-release: {e}")

            self._os_version = f"Linux {platform.release()}"
        elif self.is_windows():
            self._os_version = f"Windows {platform.release()}"
        else:
            self._os_version = f"{platform.system()} {platform.release()}"

        return self._os_version
