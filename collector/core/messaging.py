"""MQTT transport to the aggregator.

This module provides the one-way delivery of serialized snapshots to the
aggregator, plus the connection helpers used at startup. It decouples the
sampling code from the underlying MQTT client implementation.

MQTT Topics:
    {base_topic}/{node}/snapshot       - Serialized ResourceSnapshot (JSON)
    {base_topic}/{node}/availability   - "online" / "offline" (retained, LWT)
"""

import abc
import logging
import socket
import threading
import time
from typing import Optional

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)


class TransportClient(abc.ABC):
    """One-way delivery of snapshot payloads to the aggregator."""

    @abc.abstractmethod
    def deliver_snapshot(self, node_name: str, payload: bytes) -> None:
        """Send a serialized snapshot. Callers neither await nor inspect a reply."""


class MqttTransport(TransportClient):
    """Delivers snapshots by publishing them to MQTT.

    Attributes:
        client: The underlying paho-mqtt client instance.
        base_topic: Base MQTT topic for all node messages.
        qos: Quality of Service used for snapshot payloads.

    Example:
        >>> transport = MqttTransport(client, "cluster/resources")
        >>> transport.deliver_snapshot("node-01", b'{"timestamp": 0}')
        >>> transport.publish_availability("node-01", "online")
    """

    def __init__(self, client: mqtt.Client, base_topic: str, qos: int = 0):
        """Initialize the transport.

        Args:
            client: Configured paho-mqtt client instance.
            base_topic: Base topic (e.g., "cluster/resources").
            qos: QoS level for snapshot messages (default: 0).
        """
        self.client = client
        self.base_topic = base_topic.rstrip("/")
        self.qos = qos
        logger.debug(f"MqttTransport initialized with base_topic='{self.base_topic}'")

    def snapshot_topic(self, node_name: str) -> str:
        return f"{self.base_topic}/{node_name}/snapshot"

    def availability_topic(self, node_name: str) -> str:
        return f"{self.base_topic}/{node_name}/availability"

    def deliver_snapshot(self, node_name: str, payload: bytes) -> None:
        """Publish a snapshot payload.

        paho queues the message and returns immediately; the result code is
        only logged because delivery is not guaranteed.

        Args:
            node_name: Node the snapshot belongs to.
            payload: Serialized snapshot bytes.
        """
        topic = self.snapshot_topic(node_name)
        info = self.client.publish(topic, payload=payload, qos=self.qos, retain=False)
        rc = getattr(info, "rc", mqtt.MQTT_ERR_SUCCESS)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Publishing snapshot to {topic} failed: {mqtt.error_string(rc)}")
        else:
            logger.debug(f"Published snapshot to {topic} ({len(payload)} bytes)")

    def publish_availability(
        self, node_name: str, status: str = "online", qos: int = 1, retain: bool = True
    ) -> None:
        """Publish node availability status.

        Args:
            node_name: Node whose status changed.
            status: Availability status ("online" or "offline").
            qos: Quality of Service level (typically 1 for availability).
            retain: Whether to retain the message (typically True).
        """
        topic = self.availability_topic(node_name)
        self.client.publish(topic, payload=status, qos=qos, retain=retain)
        logger.debug(f"Published availability: {status}")


class ConnectionState:
    """Track MQTT connection state for thread coordination."""

    def __init__(self):
        self.connected = threading.Event()
        self.connection_count = 0
        self.lock = threading.Lock()

    def on_connected(self) -> None:
        """Mark as connected."""
        with self.lock:
            self.connected.set()
            self.connection_count += 1
            logger.info(f"Connection established (total connections: {self.connection_count})")

    def on_disconnected(self) -> None:
        """Mark as disconnected."""
        with self.lock:
            self.connected.clear()
            logger.warning("Connection lost")

    def wait_for_connection(self, timeout: Optional[float] = None) -> bool:
        """Block until connected or timeout. Returns True if connected."""
        return self.connected.wait(timeout)

    def is_connected(self) -> bool:
        """Check if currently connected."""
        return self.connected.is_set()


def connect_with_retry(
    client: mqtt.Client,
    broker: str,
    port: int,
    max_retries: Optional[int] = 10,
    initial_delay: float = 1,
    max_delay: float = 60,
    sleep=time.sleep,
) -> bool:
    """Connect to the MQTT broker with exponential backoff.

    Args:
        client: MQTT client instance.
        broker: MQTT broker hostname/IP.
        port: MQTT broker port.
        max_retries: Maximum attempts (None = retry forever).
        initial_delay: Initial retry delay in seconds.
        max_delay: Maximum retry delay in seconds.
        sleep: Sleep function (replaced in tests).

    Returns:
        True if the connection was initiated, False once retries run out.
    """
    retry_count = 0
    delay = initial_delay

    while max_retries is None or retry_count < max_retries:
        try:
            logger.info(f"Attempting to connect to MQTT broker at {broker}:{port}...")
            client.connect(broker, port, keepalive=60)
            logger.info("MQTT connection initiated successfully")
            return True

        except (ConnectionRefusedError, OSError, socket.error) as e:
            retry_count += 1
            if max_retries is not None and retry_count >= max_retries:
                logger.error(f"Failed to connect after {retry_count} attempts: {e}")
                return False

            logger.warning(f"Connection attempt {retry_count} failed: {e}")
            logger.info(f"Retrying in {delay} seconds...")
            sleep(delay)

            delay = min(delay * 2, max_delay)

    return False
