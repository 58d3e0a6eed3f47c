"""Pytest configuration and global fixtures.

This module provides fixtures and configuration that are available to all tests.
Fixtures defined here are automatically discovered by pytest and can be used
by any test function by including them as parameters.

Common Fixtures:
    - mock_mqtt_client: Mocked MQTT client for testing without broker
    - temp_config_file: Temporary config file for testing
    - fake_proc: Temporary directory laid out like /proc
    - sample_hardware: A HardwareSample with round numbers
    - make_snapshot: Factory for ResourceSnapshot objects

Example:
    def test_something(fake_proc):
        fake_proc.write_uptime(100.0, 350.0)
        provider = LinuxCpuProvider(cpu_count=4, proc_root=fake_proc.root)
        assert provider.next_value().is_ok
"""

import configparser
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from collector.core.snapshot import HardwareSample, ProcessSample, ResourceSnapshot


@pytest.fixture
def mock_mqtt_client():
    """Provide a mocked MQTT client for testing.

    This fixture creates a fully mocked paho-mqtt client that can be used
    in tests without requiring an actual MQTT broker connection.

    Returns:
        MagicMock: Mocked MQTT client with common methods stubbed

    Example:
        def test_publish(mock_mqtt_client):
            transport = MqttTransport(mock_mqtt_client, "test/topic")
            transport.deliver_snapshot("node-01", b"{}")
            mock_mqtt_client.publish.assert_called_once()
    """
    client = MagicMock()
    client.connect.return_value = 0
    client.publish.return_value = MagicMock(rc=0)
    client.loop_start.return_value = None
    client.loop_stop.return_value = None
    client.disconnect.return_value = None
    return client


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config.ini file for testing.

    Returns:
        Path: Path to temporary config file
    """
    config = configparser.ConfigParser()
    config.optionxform = str

    config["node"] = {"name": "Test Node", "interval": "5", "cycle_timeout": "30"}

    config["mqtt"] = {
        "broker": "test.broker.local",
        "port": "1883",
        "username": "testuser",
        "password": "testpass",
        "base_topic": "test/resources",
        "max_connection_retries": "5",
        "min_reconnect_delay": "1",
        "max_reconnect_delay": "30",
        "connection_timeout": "10",
    }

    config["dispatch"] = {"max_pending": "8"}

    config["services"] = {"Web": "nginx", "db": "postgres"}

    config["logging"] = {"level": "debug", "file": "logs/test.log"}

    config_file = tmp_path / "config.ini"
    with open(config_file, "w") as f:
        config.write(f)

    return config_file


class FakeProc:
    """Writes /proc style files under a temporary root."""

    def __init__(self, root: Path):
        self.root = root

    def write_uptime(self, uptime: float, idle: float) -> None:
        (self.root / "uptime").write_text(f"{uptime:.2f} {idle:.2f}\n")

    def write_meminfo(self, **fields_kb) -> None:
        lines = [f"{name}:{value:>16} kB" for name, value in fields_kb.items()]
        (self.root / "meminfo").write_text("\n".join(lines) + "\n")

    def write_status(self, pid: int, **fields_kb) -> None:
        pid_dir = self.root / str(pid)
        pid_dir.mkdir(exist_ok=True)
        lines = [f"Name:\tservice-{pid}", "State:\tS (sleeping)", f"Pid:\t{pid}"]
        lines += [f"{name}:\t{value:>8} kB" for name, value in fields_kb.items()]
        (pid_dir / "status").write_text("\n".join(lines) + "\n")


@pytest.fixture
def fake_proc(tmp_path):
    """Provide an empty directory laid out like /proc.

    Example:
        def test_meminfo(fake_proc):
            fake_proc.write_meminfo(MemTotal=1000, MemFree=200)
            assert read_meminfo(fake_proc.root)["MemTotal"] == 1000
    """
    root = tmp_path / "proc"
    root.mkdir()
    return FakeProc(root)


@pytest.fixture
def sample_hardware():
    """Provide a HardwareSample with 16 GiB of memory, half committed."""
    return HardwareSample(
        cpu_percent=25.0,
        total_memory_bytes=16 * 1024**3,
        committed_memory_bytes=8 * 1024**3,
        percent_memory_used=50.0,
    )


@pytest.fixture
def make_snapshot(sample_hardware):
    """Factory fixture that builds ResourceSnapshot objects.

    Example:
        def test_node(make_snapshot):
            snapshot = make_snapshot(timestamp=1000.0)
            assert snapshot.node_name == "node-01"
    """

    def _make(timestamp=1000.0, node_name="node-01", processes=()):
        return ResourceSnapshot(
            timestamp=timestamp,
            node_name=node_name,
            hardware=sample_hardware,
            processes=tuple(processes),
        )

    return _make


@pytest.fixture
def sample_processes():
    """Provide two ProcessSample objects for distinct services."""
    return (
        ProcessSample(
            process_id=101,
            service_id="web",
            cpu_percent=10.0,
            private_working_set_mb=512.0,
            memory_percent=3.12,
        ),
        ProcessSample(
            process_id=202,
            service_id="db",
            cpu_percent=5.5,
            private_working_set_mb=1024.0,
            memory_percent=6.25,
        ),
    )


# Pytest hooks for custom behavior


def pytest_configure(config):
    """Configure pytest with custom settings.

    This hook runs before test collection begins. The environment variables
    are used if a test ends up creating a default configuration file.
    """
    import os

    os.environ["NRC_NODE_NAME"] = "test-node"
    os.environ["NRC_MQTT_BROKER"] = "localhost"
    os.environ["NRC_MQTT_PORT"] = "1883"
    os.environ["NRC_MQTT_USER"] = "test_user"
    os.environ["NRC_MQTT_PASS"] = "test_pass"


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add automatic markers.

    Args:
        config: pytest config object
        items: list of collected test items
    """
    for item in items:
        # Auto-mark all tests in tests/unit as unit tests
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Auto-mark integration tests
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
