#!/usr/bin/env python3
"""Node Resource Collector - per-node resource sampling for a service cluster.

The collector runs on every node of the cluster. Once per interval it samples
node CPU and committed memory plus the CPU and private working set of every
service process deployed on the node, and publishes the resulting snapshot
to the aggregator over MQTT.

Architecture:
    1. **Providers** (collector/providers/):
       - cpu, memory, process: Linux and Windows metric sources
       - factory: selects one implementation per family at startup

    2. **Core** (collector/core/):
       - config: Configuration management
       - snapshot: Snapshot records and JSON serialization
       - placement: Which pids belong to which services
       - messaging: MQTT transport
       - dispatch: Bounded fire-and-forget delivery

    3. **Collection** (collector/collectors/):
       - system: Node hardware sample

    4. **Monitoring** (collector/monitors/):
       - sampling: The periodic sampling loop

MQTT Topics Structure:
    {base_topic}/{node}/availability   - Online/offline status (LWT)
    {base_topic}/{node}/snapshot       - Resource snapshot (JSON)

Thread Safety:
    - The sampling loop and the dispatcher each run in a daemon thread
    - Graceful shutdown via threading.Event signals
    - Clean disconnect on SIGINT/SIGTERM

Configuration:
    Configuration is loaded from data/config.ini (created from NRC_*
    environment variables on first run), see collector.core.config.

Usage:
    python main.py

Exit Codes:
    0: Clean shutdown
    1: Configuration error, unsupported platform, connection failure or a
       fatal sampling error (the service manager is expected to restart us)
"""

# Standard library imports
import logging
import signal
import sys
import threading
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

# Third-party imports
import paho.mqtt.client as mqtt

# Local imports
from collector import __version__
from collector.core.config import ConfigError, Settings, load_settings
from collector.core.dispatch import SnapshotDispatcher
from collector.core.messaging import ConnectionState, MqttTransport, connect_with_retry
from collector.core.placement import ProcessNamePlacement
from collector.monitors.sampling import SamplingLoop
from collector.providers.base import SamplingError, UnsupportedPlatformError
from collector.providers.factory import ProviderFactory
from collector.utils.platform import PlatformUtils

logger = logging.getLogger()

exit_flag = threading.Event()

# Stop events for all worker threads
stop_events: List[threading.Event] = []

# Errors raised by worker threads, checked on shutdown
fatal_errors: List[BaseException] = []


# ----------------------------
# Logging Configuration
# ----------------------------


def setup_logging(level: str = "INFO", log_file: str = "data/collector.log") -> None:
    """Configure root logging to the console and a rotating file."""
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(module)s: %(message)s",
        datefmt="%m/%d/%Y %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB per file
        backupCount=3,
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


# ----------------------------
# MQTT Client
# ----------------------------


def build_client(settings: Settings, conn_state: ConnectionState, availability_topic: str) -> mqtt.Client:
    """Create the MQTT client with credentials, callbacks and LWT.

    Args:
        settings: Loaded settings.
        conn_state: Connection tracker updated from the callbacks.
        availability_topic: Availability topic for this node.
    """
    # Ignore deprecated mqtt callback version
    warnings.filterwarnings("ignore", category=DeprecationWarning)

    client = mqtt.Client()
    client.username_pw_set(settings.mqtt_user, settings.mqtt_pass)

    def on_connect(client, userdata, flags, rc):
        if rc == 0:
            logger.info("MQTT connected successfully")
            conn_state.on_connected()
            # Publish online status (LWT publishes offline on disconnect)
            client.publish(availability_topic, "online", qos=1, retain=True)
        else:
            logger.error(f"MQTT connection refused: {mqtt.connack_string(rc)}")
            conn_state.on_disconnected()

    def on_disconnect(client, userdata, rc):
        conn_state.on_disconnected()
        if rc == 0:
            logger.info("MQTT client disconnected cleanly")
            return
        logger.warning(f"MQTT disconnected unexpectedly: {mqtt.error_string(rc)}")
        logger.info("Automatic reconnection will be attempted by MQTT client...")

    client.on_connect = on_connect
    client.on_disconnect = on_disconnect

    client.will_set(availability_topic, payload="offline", qos=1, retain=True)
    logger.info("Last Will and Testament configured")

    client.reconnect_delay_set(
        min_delay=settings.mqtt_min_reconnect_delay,
        max_delay=settings.mqtt_max_reconnect_delay,
    )
    return client


# ----------------------------
# Signal Handlers
# ----------------------------


def signal_handler(sig, frame):
    """Handle shutdown signals gracefully."""
    logger.info("Shutdown signal received, stopping all threads...")
    exit_flag.set()
    for stop_event in stop_events:
        stop_event.set()


def run_sampling(loop: SamplingLoop, stop_event: threading.Event) -> None:
    """Thread target that stops the agent once sampling ends, recording any error."""
    try:
        loop.run(stop_event)
    except SamplingError as e:
        fatal_errors.append(e)
    except Exception as e:
        logger.critical(f"Sampling thread crashed: {e!r}", exc_info=True)
        fatal_errors.append(e)
    finally:
        exit_flag.set()


# ----------------------------
# Main
# ----------------------------


def main() -> int:
    """
    Main entry point for the Node Resource Collector.

    1. Loads settings and configures logging
    2. Selects the platform providers
    3. Connects to the MQTT broker with retry logic
    4. Starts the snapshot dispatcher and the sampling loop
    5. Waits until a shutdown signal or a fatal sampling error

    Returns:
        Process exit code.
    """
    try:
        settings = load_settings()
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Configuration error: {e}")
        return 1

    setup_logging(settings.log_level, settings.log_file)
    logger.info(f"Starting Node Resource Collector {__version__}...")

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    platform_utils = PlatformUtils()
    logger.info(f"Platform: {platform_utils.get_os_version()}")

    try:
        providers = ProviderFactory(platform_utils).create()
    except UnsupportedPlatformError as e:
        logger.critical(str(e))
        return 1

    conn_state = ConnectionState()
    node_id = settings.node_id
    # The transport needs the client and the client needs the LWT topic
    availability_topic = f"{settings.base_topic.rstrip('/')}/{node_id}/availability"
    client = build_client(settings, conn_state, availability_topic)
    transport = MqttTransport(client, settings.base_topic)

    logger.info("Initiating connection to MQTT broker...")
    if not connect_with_retry(
        client, settings.mqtt_broker, settings.mqtt_port, max_retries=settings.mqtt_max_retries
    ):
        logger.error("Failed to connect to MQTT broker after maximum retry attempts")
        return 1

    client.loop_start()
    logger.info("MQTT client loop started")

    if not conn_state.wait_for_connection(timeout=settings.mqtt_connection_timeout):
        logger.error("Timed out waiting for MQTT connection")
        client.loop_stop()
        return 1

    dispatcher = SnapshotDispatcher(transport, max_pending=settings.max_pending)
    dispatcher.start()

    placement = ProcessNamePlacement(settings.services)
    loop = SamplingLoop(
        node_id,
        providers,
        placement,
        dispatcher,
        interval=settings.interval,
        cycle_timeout=settings.cycle_timeout,
    )

    sampling_stop_event = threading.Event()
    stop_events.append(sampling_stop_event)
    sampling_thread = threading.Thread(
        target=run_sampling,
        args=(loop, sampling_stop_event),
        name="SamplingLoop",
        daemon=True,
    )
    sampling_thread.start()

    logger.info("=" * 50)
    logger.info("Node Resource Collector running. Press Ctrl+C to exit...")
    logger.info(f"Node: {node_id}")
    logger.info(f"Services: {', '.join(settings.services) or 'none'}")
    logger.info(f"MQTT Broker: {settings.mqtt_broker}:{settings.mqtt_port}")
    logger.info(f"Snapshot Topic: {transport.snapshot_topic(node_id)}")
    logger.info("=" * 50)

    try:
        while not exit_flag.is_set():
            exit_flag.wait(1)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
        exit_flag.set()

    for stop_event in stop_events:
        stop_event.set()
    sampling_thread.join(timeout=5)
    dispatcher.stop()

    logger.info("Publishing offline status...")
    transport.publish_availability(node_id, "offline")

    client.loop_stop()
    client.disconnect()

    if fatal_errors:
        logger.critical(f"Exiting after fatal sampling error: {fatal_errors[0]}")
        return 1

    logger.info(
        f"Shutdown complete ({loop.dispatched} snapshots dispatched, "
        f"{dispatcher.dropped} dropped, {dispatcher.failed} failed)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
