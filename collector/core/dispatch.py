"""Bounded fire-and-forget snapshot dispatch.

The sampling loop must never wait on the aggregator, but an unreachable
aggregator must not make pending snapshots pile up without limit either.
:class:`SnapshotDispatcher` sits between the two: ``submit()`` returns
immediately, a single worker thread delivers snapshots in FIFO order, and
when ``max_pending`` snapshots are already waiting the oldest one is
dropped to make room for the new one.
"""

import logging
import threading
from collections import deque
from typing import Deque, Optional

from collector.core.messaging import TransportClient
from collector.core.snapshot import ResourceSnapshot, serialize_snapshot

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 16


class SnapshotDispatcher:
    """Delivers snapshots to a transport on a background thread.

    Attributes:
        transport: Transport used for delivery.
        max_pending: Maximum snapshots waiting for delivery.

    Example:
        >>> dispatcher = SnapshotDispatcher(transport, max_pending=8)
        >>> dispatcher.start()
        >>> dispatcher.submit(snapshot)   # returns immediately
        >>> dispatcher.stop()
    """

    def __init__(self, transport: TransportClient, max_pending: int = DEFAULT_MAX_PENDING):
        if max_pending < 1:
            raise ValueError(f"max_pending must be at least 1, got {max_pending}")
        self.transport = transport
        self.max_pending = max_pending
        self._pending: Deque[ResourceSnapshot] = deque()
        self._condition = threading.Condition()
        self._stopping = False
        self._thread: Optional[threading.Thread] = None
        self._dropped = 0
        self._delivered = 0
        self._failed = 0

    @property
    def dropped(self) -> int:
        """Snapshots discarded because the queue was full."""
        with self._condition:
            return self._dropped

    @property
    def delivered(self) -> int:
        """Snapshots handed to the transport without error."""
        with self._condition:
            return self._delivered

    @property
    def failed(self) -> int:
        """Snapshots whose delivery raised."""
        with self._condition:
            return self._failed

    @property
    def pending(self) -> int:
        with self._condition:
            return len(self._pending)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the delivery thread."""
        if self.is_running:
            logger.warning("Dispatcher already running")
            return
        with self._condition:
            self._stopping = False
        self._thread = threading.Thread(target=self._run, name="SnapshotDispatcher", daemon=True)
        self._thread.start()
        logger.debug(f"Dispatcher started (max_pending={self.max_pending})")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the delivery thread.

        Snapshots already submitted are still delivered; the worker drains
        the queue before it exits. Anything left once ``timeout`` expires is
        abandoned with the daemon thread.

        Args:
            timeout: Seconds to wait for pending deliveries to finish.
        """
        with self._condition:
            self._stopping = True
            self._condition.notify_all()

        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(
                    f"Dispatcher did not drain within {timeout}s, "
                    f"{self.pending} snapshot(s) left undelivered"
                )
        self._thread = None
        logger.debug("Dispatcher stopped")

    def submit(self, snapshot: ResourceSnapshot) -> None:
        """Queue a snapshot for delivery without waiting.

        If the queue is full the oldest pending snapshot is dropped.
        """
        with self._condition:
            if len(self._pending) >= self.max_pending:
                oldest = self._pending.popleft()
                self._dropped += 1
                logger.warning(
                    f"Dispatch queue full ({self.max_pending}), dropped snapshot "
                    f"from {oldest.timestamp:.0f} (total dropped: {self._dropped})"
                )
            self._pending.append(snapshot)
            self._condition.notify()

    def _next(self) -> Optional[ResourceSnapshot]:
        with self._condition:
            while not self._pending and not self._stopping:
                self._condition.wait()
            if not self._pending:
                return None
            return self._pending.popleft()

    def _run(self) -> None:
        while True:
            snapshot = self._next()
            if snapshot is None:
                return
            self._deliver(snapshot)

    def _deliver(self, snapshot: ResourceSnapshot) -> None:
        try:
            self.transport.deliver_snapshot(snapshot.node_name, serialize_snapshot(snapshot))
        except Exception as e:
            with self._condition:
                self._failed += 1
            logger.error(f"Error delivering snapshot from {snapshot.node_name}: {e}", exc_info=True)
            return
        with self._condition:
            self._delivered += 1
