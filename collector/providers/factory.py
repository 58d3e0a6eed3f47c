"""Selection of the platform implementation for each provider family.

:class:`ProviderFactory` builds each provider lazily, exactly once, under a
lock (double-checked, so the common already-built path takes no lock).
Startup code calls :meth:`ProviderFactory.create` once and passes the
resulting immutable :class:`ProviderSet` to the sampling loop; nothing
looks providers up through module globals.

Example:
    >>> providers = ProviderFactory().create()
    >>> providers.cpu.next_value()
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from collector.providers.base import UnsupportedPlatformError
from collector.providers.cpu import CpuProvider, LinuxCpuProvider, WindowsCpuProvider
from collector.providers.memory import LinuxMemoryProvider, MemoryProvider, WindowsMemoryProvider
from collector.providers.process import (
    LinuxProcessProvider,
    ProcessResourceProvider,
    WindowsProcessProvider,
)
from collector.utils.platform import PlatformUtils

logger = logging.getLogger(__name__)

# family -> platform -> implementation
IMPLEMENTATIONS: Dict[str, Dict[str, Callable[[], object]]] = {
    "cpu": {"linux": LinuxCpuProvider, "windows": WindowsCpuProvider},
    "memory": {"linux": LinuxMemoryProvider, "windows": WindowsMemoryProvider},
    "process": {"linux": LinuxProcessProvider, "windows": WindowsProcessProvider},
}


@dataclass(frozen=True)
class ProviderSet:
    """The providers used by one sampling loop."""

    cpu: CpuProvider
    memory: MemoryProvider
    process: ProcessResourceProvider


class ProviderFactory:
    """Lazily builds one provider per family for the host platform.

    Attributes:
        platform: Platform utilities used as the selection key.
        implementations: Family to platform to constructor table.

    Raises:
        UnsupportedPlatformError: From an accessor, on first access, when the
            host is neither Windows nor Linux.
    """

    def __init__(
        self,
        platform_utils: Optional[PlatformUtils] = None,
        implementations: Optional[Dict[str, Dict[str, Callable[[], object]]]] = None,
    ):
        self.platform = platform_utils or PlatformUtils()
        self.implementations = implementations or IMPLEMENTATIONS
        self._instances: Dict[str, object] = {}
        self._lock = threading.Lock()

    def _get(self, family: str) -> object:
        instance = self._instances.get(family)
        if instance is None:
            with self._lock:
                instance = self._instances.get(family)
                if instance is None:
                    instance = self._build(family)
                    self._instances[family] = instance
        return instance

    def _build(self, family: str) -> object:
        platform_name = self.platform.get_platform()
        constructor = self.implementations.get(family, {}).get(platform_name)
        if constructor is None:
            raise UnsupportedPlatformError(platform_name, family)

        instance = constructor()
        logger.info(f"Selected {type(instance).__name__} for {family} on {platform_name}")
        return instance

    def cpu(self) -> CpuProvider:
        """Get the CPU provider, building it on first call."""
        return self._get("cpu")

    def memory(self) -> MemoryProvider:
        """Get the memory provider, building it on first call."""
        return self._get("memory")

    def process(self) -> ProcessResourceProvider:
        """Get the per-process provider, building it on first call."""
        return self._get("process")

    def create(self) -> ProviderSet:
        """Build (or reuse) every provider and bundle them.

        Calling this at startup makes an unsupported platform fail there
        rather than on the first sampling cycle.
        """
        return ProviderSet(cpu=self.cpu(), memory=self.memory(), process=self.process())
