"""Configuration management for the Node Resource Collector.

Settings are read from an INI file. When the file does not exist a default
one is written from environment variables, so a fresh node can be brought
up by its service manager without an interactive setup step.

Configuration Structure:
    [node]
        name: Node name reported with every snapshot (default: hostname)
        interval: Sampling interval in seconds (default: 5)
        cycle_timeout: Seconds after which a cycle's snapshot is stale
            and is not dispatched (default: 60)

    [mqtt]
        broker: MQTT broker hostname or IP address
        port: MQTT broker port (typically 1883)
        username: MQTT authentication username
        password: MQTT authentication password
        base_topic: Topic prefix for node messages (default: cluster/resources)
        max_connection_retries: Maximum connection attempts before failure
        min_reconnect_delay: Initial reconnection delay in seconds
        max_reconnect_delay: Maximum reconnection delay in seconds
        connection_timeout: Timeout for initial connection in seconds

    [dispatch]
        max_pending: Snapshots allowed to wait for delivery (default: 16)

    [services]
        <service id> = <process name>   (one line per monitored service)

    [logging]
        level: Root log level (default: INFO)
        file: Rotating log file path (default: data/collector.log)

Environment Variables (used only when creating the file):
    NRC_NODE_NAME, NRC_INTERVAL, NRC_MQTT_BROKER, NRC_MQTT_PORT,
    NRC_MQTT_USER, NRC_MQTT_PASS, NRC_BASE_TOPIC

Usage:
    from collector.core.config import load_settings

    settings = load_settings(CONFIG_PATH)
    client.connect(settings.mqtt_broker, settings.mqtt_port)
"""

import configparser
import logging
import os
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

logger = logging.getLogger(__name__)


# ----------------------------
# Paths
# ----------------------------

BASE_DIR = Path(__file__).resolve().parent.parent.parent
CONFIG_PATH = BASE_DIR / "data" / "config.ini"

DEFAULT_INTERVAL = 5
DEFAULT_CYCLE_TIMEOUT = 60
DEFAULT_MAX_PENDING = 16
DEFAULT_BASE_TOPIC = "cluster/resources"


class ConfigError(Exception):
    """Raised when the configuration file is missing, corrupt or invalid."""


@dataclass(frozen=True)
class Settings:
    """Immutable view of the configuration file."""

    node_name: str
    interval: float = DEFAULT_INTERVAL
    cycle_timeout: float = DEFAULT_CYCLE_TIMEOUT
    mqtt_broker: str = "localhost"
    mqtt_port: int = 1883
    mqtt_user: str = ""
    mqtt_pass: str = ""
    base_topic: str = DEFAULT_BASE_TOPIC
    mqtt_max_retries: int = 10
    mqtt_min_reconnect_delay: int = 1
    mqtt_max_reconnect_delay: int = 60
    mqtt_connection_timeout: int = 30
    max_pending: int = DEFAULT_MAX_PENDING
    services: Dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"
    log_file: str = str(BASE_DIR / "data" / "collector.log")

    @property
    def node_id(self) -> str:
        """Topic-safe node identifier."""
        return self.node_name.lower().replace(" ", "_")


# ----------------------------
# Validation Functions
# ----------------------------


def validate_required_mqtt(broker: str, port: str, user: str, password: str) -> Tuple[bool, str]:
    """
    Validate required MQTT settings.

    Returns (is_valid, error_message).
    """
    if not broker or not broker.strip():
        return False, "MQTT broker cannot be empty"

    if not user or not user.strip():
        return False, "MQTT username cannot be empty"

    if not password:
        logger.warning("MQTT password is empty - ensure your broker allows this")

    try:
        port_int = int(port)
        if not (1 <= port_int <= 65535):
            return False, f"MQTT port must be between 1-65535, got {port}"
    except ValueError:
        return False, f"MQTT port must be a number, got '{port}'"

    return True, ""


def validate_timing(interval: float, cycle_timeout: float) -> Tuple[bool, str]:
    """
    Validate the sampling interval and cycle timeout.

    Returns (is_valid, error_message).
    """
    if interval <= 0:
        return False, f"Sampling interval must be positive, got {interval}"
    if cycle_timeout <= 0:
        return False, f"Cycle timeout must be positive, got {cycle_timeout}"
    return True, ""


# ----------------------------
# First-run Configuration
# ----------------------------


def create_default_config(config_path: Path) -> None:
    """
    Write a default configuration file from environment variables.

    Args:
        config_path: Path where config.ini should be created

    Raises:
        ConfigError: If the file cannot be written
    """
    node_name = os.getenv("NRC_NODE_NAME", socket.gethostname())
    interval = os.getenv("NRC_INTERVAL", str(DEFAULT_INTERVAL))
    broker = os.getenv("NRC_MQTT_BROKER", "localhost")
    port = os.getenv("NRC_MQTT_PORT", "1883")
    user = os.getenv("NRC_MQTT_USER", "username")
    password = os.getenv("NRC_MQTT_PASS", "password")
    base_topic = os.getenv("NRC_BASE_TOPIC", DEFAULT_BASE_TOPIC)

    config_content = f"""; ============ NODE RESOURCE COLLECTOR CONFIG ============
; Generated on first run
; =======================================================

[node]
name = {node_name}
interval = {interval}
cycle_timeout = {DEFAULT_CYCLE_TIMEOUT}

[mqtt]
broker = {broker}
port = {port}
username = {user}
password = {password}
base_topic = {base_topic}
max_connection_retries = 10
min_reconnect_delay = 1
max_reconnect_delay = 60
connection_timeout = 30

[dispatch]
max_pending = {DEFAULT_MAX_PENDING}

[services]
; web = nginx

[logging]
level = INFO
file = data/collector.log
"""

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config_content, encoding="utf-8")
    except PermissionError as e:
        raise ConfigError(f"Permission denied writing to: {config_path}") from e
    except OSError as e:
        raise ConfigError(f"Failed to write config file: {e}") from e

    logger.warning("Edit config.ini with real MQTT credentials before running!")
    logger.info(f"Configuration created at {config_path}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """
    Load the configuration file, creating it first if missing.

    Args:
        config_path: Path to config.ini

    Returns:
        Loaded ConfigParser object

    Raises:
        ConfigError: If the file is unreadable or lacks required sections
    """
    if not config_path.exists():
        create_default_config(config_path)

    # Service ids are case sensitive.
    config = configparser.ConfigParser()
    config.optionxform = str

    try:
        files_read = config.read(config_path, encoding="utf-8")
    except configparser.Error as e:
        raise ConfigError(f"Configuration file is corrupt: {e}") from e

    if not files_read:
        raise ConfigError(f"Config file exists but couldn't be read: {config_path}")

    for section in ("node", "mqtt"):
        if not config.has_section(section):
            raise ConfigError(f"Config file missing [{section}] section")

    return config


def load_settings(config_path: Path = CONFIG_PATH) -> Settings:
    """
    Load and validate settings.

    Args:
        config_path: Path to config.ini

    Returns:
        Settings

    Raises:
        ConfigError: On a missing, corrupt or invalid configuration
    """
    config = read_config(config_path)

    try:
        node_name = config.get("node", "name", fallback="").strip() or socket.gethostname()
        interval = config.getfloat("node", "interval", fallback=DEFAULT_INTERVAL)
        cycle_timeout = config.getfloat("node", "cycle_timeout", fallback=DEFAULT_CYCLE_TIMEOUT)

        broker = config.get("mqtt", "broker", fallback="")
        port = config.get("mqtt", "port", fallback="1883")
        user = config.get("mqtt", "username", fallback="")
        password = config.get("mqtt", "password", fallback="")

        valid, error = validate_required_mqtt(broker, port, user, password)
        if not valid:
            raise ConfigError(error)

        valid, error = validate_timing(interval, cycle_timeout)
        if not valid:
            raise ConfigError(error)

        max_pending = config.getint("dispatch", "max_pending", fallback=DEFAULT_MAX_PENDING)
        if max_pending < 1:
            raise ConfigError(f"max_pending must be at least 1, got {max_pending}")

        services = dict(config.items("services")) if config.has_section("services") else {}

        log_file = config.get("logging", "file", fallback="data/collector.log")
        if not Path(log_file).is_absolute():
            log_file = str(BASE_DIR / log_file)

        return Settings(
            node_name=node_name,
            interval=interval,
            cycle_timeout=cycle_timeout,
            mqtt_broker=broker,
            mqtt_port=int(port),
            mqtt_user=user,
            mqtt_pass=password,
            base_topic=config.get("mqtt", "base_topic", fallback=DEFAULT_BASE_TOPIC),
            mqtt_max_retries=config.getint("mqtt", "max_connection_retries", fallback=10),
            mqtt_min_reconnect_delay=config.getint("mqtt", "min_reconnect_delay", fallback=1),
            mqtt_max_reconnect_delay=config.getint("mqtt", "max_reconnect_delay", fallback=60),
            mqtt_connection_timeout=config.getint("mqtt", "connection_timeout", fallback=30),
            max_pending=max_pending,
            services=services,
            log_level=config.get("logging", "level", fallback="INFO").upper(),
            log_file=log_file,
        )
    except ValueError as e:
        raise ConfigError(f"Invalid configuration value: {e}") from e
