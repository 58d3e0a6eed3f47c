"""Periodic sampling and dispatch loop.

This module provides the SamplingLoop class which, once per tick, samples
node hardware and every deployed process, assembles a ResourceSnapshot and
hands it to the dispatcher without waiting for delivery.

Ticks are aligned to wall-clock multiples of the interval (with a 5 second
interval, cycles start at :00, :05, :10, ...), so every node in the cluster
samples at roughly the same instant and a slow cycle does not shift the
schedule of the following ones.
"""

# Standard library imports
import logging
import threading
import time
from typing import Callable, List, Optional

# Local imports
from collector.collectors.system import HardwareCollector
from collector.core.dispatch import SnapshotDispatcher
from collector.core.placement import PlacementSource
from collector.core.snapshot import ProcessSample, ResourceSnapshot
from collector.providers.base import SamplingError
from collector.providers.factory import ProviderSet

logger = logging.getLogger(__name__)


def time_until_next_tick(now: float, interval: float) -> float:
    """Seconds from ``now`` until the next wall-clock multiple of ``interval``.

    Args:
        now: Current time in epoch seconds.
        interval: Tick interval in seconds.

    Returns:
        Delay in (0, interval]. Exactly on a tick, the full interval is
        returned so a cycle never runs twice for the same tick.

    Example:
        >>> time_until_next_tick(1002.0, 5.0)
        3.0
        >>> time_until_next_tick(1005.0, 5.0)
        5.0
    """
    return interval - (now % interval)


class SamplingLoop:
    """Samples a node on a fixed tick and dispatches each snapshot.

    The loop is the only caller of its providers. Processes are sampled one
    after another rather than in parallel, so the sampler itself does not
    add a burst of CPU load to the numbers it is measuring.

    Attributes:
        node_name: Node the snapshots describe.
        providers: CPU, memory and process providers.
        placement: Source of the deployed pid to service mapping.
        dispatcher: Fire-and-forget snapshot dispatcher.
        interval: Tick interval in seconds.
        cycle_timeout: Seconds after which a cycle's snapshot is too stale
            to dispatch.
        dispatched: Snapshots handed to the dispatcher.
        skipped: Cycles that produced no dispatch (stale or cancelled).

    Example:
        >>> providers = ProviderFactory().create()
        >>> loop = SamplingLoop("node-01", providers, placement, dispatcher, interval=5)
        >>> stop_event = threading.Event()
        >>> threading.Thread(target=loop.run, args=(stop_event,), daemon=True).start()
        >>> # Later, stop sampling
        >>> stop_event.set()
    """

    def __init__(
        self,
        node_name: str,
        providers: ProviderSet,
        placement: PlacementSource,
        dispatcher: SnapshotDispatcher,
        interval: float = 5.0,
        cycle_timeout: float = 60.0,
        hardware: Optional[HardwareCollector] = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """Initialize the sampling loop.

        Args:
            node_name: Node name reported with every snapshot.
            providers: Providers built once at startup by ProviderFactory.
            placement: Source of the deployed process mapping.
            dispatcher: Dispatcher that delivers snapshots.
            interval: Tick interval in seconds (default: 5).
            cycle_timeout: Stale-snapshot threshold in seconds (default: 60).
            hardware: Hardware collector (built from providers if None).
            clock: Wall clock in epoch seconds.
            monotonic: Monotonic clock used to time cycles.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.node_name = node_name
        self.providers = providers
        self.placement = placement
        self.dispatcher = dispatcher
        self.interval = interval
        self.cycle_timeout = cycle_timeout
        self.hardware = hardware or HardwareCollector(providers.cpu, providers.memory)
        self._clock = clock
        self._monotonic = monotonic
        self._last_timestamp = 0.0
        self.dispatched = 0
        self.skipped = 0
        logger.debug(f"SamplingLoop initialized for {node_name} with interval={interval}s")

    def _next_timestamp(self, now: float) -> float:
        timestamp = max(now * 1000.0, self._last_timestamp)
        self._last_timestamp = timestamp
        return timestamp

    def _sample_processes(self, total_memory_bytes: int) -> List[ProcessSample]:
        try:
            deployed = dict(self.placement.list_deployed_processes(self.node_name))
        except Exception as e:
            raise SamplingError(f"Could not list deployed processes on {self.node_name}: {e}") from e

        process_provider = self.providers.process
        samples = []
        for pid, service_id in deployed.items():
            sample = process_provider.sample(pid, service_id, total_memory_bytes)
            if sample.degraded:
                logger.info(f"Degraded sample for process {pid} ({service_id})")
            samples.append(sample)

        process_provider.forget(deployed.keys())
        return samples

    def run_cycle(self, now: Optional[float] = None) -> ResourceSnapshot:
        """Sample the node once and assemble a snapshot.

        Args:
            now: Cycle start time in epoch seconds (defaults to the clock).

        Returns:
            ResourceSnapshot with one HardwareSample and one ProcessSample
            per deployed process. Its timestamp (epoch milliseconds) is never
            earlier than the previous snapshot's.

        Raises:
            SamplingError: If a reading was FATAL or the placement source
                failed.
        """
        timestamp = self._next_timestamp(self._clock() if now is None else now)

        hardware = self.hardware.collect()
        processes = self._sample_processes(hardware.total_memory_bytes)

        snapshot = ResourceSnapshot(
            timestamp=timestamp,
            node_name=self.node_name,
            hardware=hardware,
            processes=tuple(processes),
        )
        if snapshot.is_degraded:
            logger.warning(
                f"Snapshot {timestamp:.0f} has degraded readings: "
                f"hardware={list(hardware.degraded)} "
                f"processes={[p.process_id for p in processes if p.degraded]}"
            )
        return snapshot

    def run(self, stop_event: threading.Event) -> None:
        """Run cycles until ``stop_event`` is set.

        Each cycle waits for the next tick (the wait ends early if the event
        is set), samples, and submits the snapshot to the dispatcher. A
        snapshot is not dispatched if the cycle overran ``cycle_timeout`` or
        if the event was set while sampling.

        Args:
            stop_event: Event to signal sampling should stop.

        Raises:
            SamplingError: On a fatal reading. The loop stops; restarting is
                up to the caller.
        """
        logger.info(f"Sampling loop started for {self.node_name} (interval={self.interval}s)")

        try:
            while not stop_event.is_set():
                delay = time_until_next_tick(self._clock(), self.interval)
                if stop_event.wait(delay):
                    break

                started = self._monotonic()
                snapshot = self.run_cycle()
                elapsed = self._monotonic() - started

                if elapsed > self.cycle_timeout:
                    self.skipped += 1
                    logger.warning(
                        f"Cycle took {elapsed:.1f}s (timeout {self.cycle_timeout}s), "
                        f"snapshot {snapshot.timestamp:.0f} not dispatched"
                    )
                    continue

                if stop_event.is_set():
                    self.skipped += 1
                    logger.info(f"Stop requested, snapshot {snapshot.timestamp:.0f} not dispatched")
                    break

                self.dispatcher.submit(snapshot)
                self.dispatched += 1
                totals = snapshot.process_totals()
                logger.debug(
                    f"Dispatched snapshot {snapshot.timestamp:.0f} in {elapsed:.2f}s: "
                    f"{totals.process_count} process(es) using {totals.cpu_percent}% CPU "
                    f"and {totals.private_working_set_mb} MB"
                )
        except SamplingError as e:
            logger.critical(f"Fatal error in sampling loop: {e}", exc_info=True)
            raise
        finally:
            logger.info("Sampling loop stopped")
