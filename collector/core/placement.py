"""Sources for the deployed-process mapping of a node.

The sampling loop asks a placement source which processes are deployed on
the node and which service each one hosts. The cluster's own placement
service normally answers this; the two sources here cover fixed
deployments and hosts where services are recognised by process name.
"""

import abc
import logging
from typing import Dict, Mapping, Optional

import psutil

logger = logging.getLogger(__name__)


class PlacementSource(abc.ABC):
    """Answers "which processes are deployed on this node?"."""

    @abc.abstractmethod
    def list_deployed_processes(self, node_name: str) -> Mapping[int, str]:
        """Return a mapping of process id to service identifier.

        The result may be stale; the sampler copes with processes that have
        exited since.
        """


class StaticPlacement(PlacementSource):
    """A fixed pid to service mapping.

    Example:
        >>> placement = StaticPlacement({4242: "fabric:/App/Web"})
        >>> placement.list_deployed_processes("node-01")
        {4242: 'fabric:/App/Web'}
    """

    def __init__(self, processes: Optional[Mapping[int, str]] = None):
        self._processes: Dict[int, str] = dict(processes or {})

    def list_deployed_processes(self, node_name: str) -> Mapping[int, str]:
        return dict(self._processes)


class ProcessNamePlacement(PlacementSource):
    """Finds service processes by executable name.

    Attributes:
        services: Mapping of service identifier to process name, e.g.
            ``{"web": "nginx", "db": "postgres"}``. Name matching is case
            insensitive so "Nginx.exe" and "nginx.exe" are the same process.

    Example:
        >>> placement = ProcessNamePlacement({"web": "nginx"})
        >>> pids = placement.list_deployed_processes("node-01")
    """

    def __init__(self, services: Mapping[str, str]):
        self.services = dict(services)
        self._by_name = {name.lower(): service for service, name in self.services.items()}

    def list_deployed_processes(self, node_name: str) -> Mapping[int, str]:
        deployed: Dict[int, str] = {}
        if not self._by_name:
            return deployed

        for proc in psutil.process_iter(["pid", "name"]):
            name = (proc.info.get("name") or "").lower()
            service = self._by_name.get(name)
            if service is not None:
                deployed[proc.info["pid"]] = service

        logger.debug(f"Found {len(deployed)} deployed process(es) on {node_name}")
        return deployed
