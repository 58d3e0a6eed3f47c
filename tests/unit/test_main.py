"""Unit tests for the entry point wiring.

Key Testing Patterns:
    - Patch paho's Client class so no socket is opened
    - Exercise main() exit codes with settings and providers patched

Example Run:
    pytest tests/unit/test_main.py -v
"""

from unittest.mock import MagicMock, patch

import pytest

import main
from collector.core.config import ConfigError, Settings
from collector.core.messaging import ConnectionState
from collector.providers.base import SamplingError, UnsupportedPlatformError


@pytest.fixture(autouse=True)
def reset_globals():
    main.exit_flag.clear()
    main.stop_events.clear()
    main.fatal_errors.clear()
    yield
    main.exit_flag.clear()
    main.stop_events.clear()
    main.fatal_errors.clear()


class TestBuildClient:
    """Test suite for MQTT client construction."""

    @patch("main.mqtt.Client")
    def test_configures_credentials_and_lwt(self, mock_client_cls):
        """Test the client gets credentials, an offline LWT and reconnect delays."""
        settings = Settings(node_name="node-01", mqtt_user="u", mqtt_pass="p")
        topic = "cluster/resources/node-01/availability"

        client = main.build_client(settings, ConnectionState(), topic)

        client.username_pw_set.assert_called_once_with("u", "p")
        client.will_set.assert_called_once_with(topic, payload="offline", qos=1, retain=True)
        client.reconnect_delay_set.assert_called_once_with(min_delay=1, max_delay=60)

    @patch("main.mqtt.Client")
    def test_on_connect_publishes_online(self, mock_client_cls):
        """Test a successful connection marks the node online."""
        conn_state = ConnectionState()
        topic = "cluster/resources/node-01/availability"
        client = main.build_client(Settings(node_name="node-01"), conn_state, topic)

        client.on_connect(client, None, {}, 0)

        assert conn_state.is_connected() is True
        client.publish.assert_called_once_with(topic, "online", qos=1, retain=True)


class TestRunSampling:
    """Test suite for the sampling thread target."""

    def test_fatal_error_recorded_and_exit_requested(self):
        """Test a fatal sampling error stops the agent."""
        loop = MagicMock()
        error = SamplingError("counter crashed")
        loop.run.side_effect = error

        main.run_sampling(loop, MagicMock())

        assert main.fatal_errors == [error]
        assert main.exit_flag.is_set()

    def test_unexpected_error_still_stops_agent(self):
        """Test an unclassified crash in the sampling thread does not leave main waiting."""
        loop = MagicMock()
        error = RuntimeError("provider bug")
        loop.run.side_effect = error

        main.run_sampling(loop, MagicMock())

        assert main.fatal_errors == [error]
        assert main.exit_flag.is_set()

    def test_clean_stop_requests_exit(self):
        """Test a loop that returns normally also releases main."""
        main.run_sampling(MagicMock(), MagicMock())

        assert main.fatal_errors == []
        assert main.exit_flag.is_set()


class TestMain:
    """Test suite for main() exit codes."""

    @patch("main.load_settings", side_effect=ConfigError("Config file missing [mqtt] section"))
    def test_config_error_exits_1(self, mock_load_settings):
        assert main.main() == 1

    @patch("main.signal.signal")
    @patch("main.setup_logging")
    @patch("main.ProviderFactory")
    @patch("main.load_settings")
    def test_unsupported_platform_exits_1(
        self, mock_load_settings, mock_factory, mock_setup_logging, mock_signal
    ):
        """Test an unsupported OS fails at startup."""
        mock_load_settings.return_value = Settings(node_name="node-01")
        mock_factory.return_value.create.side_effect = UnsupportedPlatformError("unknown", "cpu")

        assert main.main() == 1

    @patch("main.connect_with_retry", return_value=False)
    @patch("main.build_client")
    @patch("main.signal.signal")
    @patch("main.setup_logging")
    @patch("main.ProviderFactory")
    @patch("main.load_settings")
    def test_unreachable_broker_exits_1(
        self, mock_load_settings, mock_factory, mock_setup_logging, mock_signal, mock_build, mock_connect
    ):
        """Test exhausting connection retries fails startup."""
        mock_load_settings.return_value = Settings(node_name="node-01")

        assert main.main() == 1
        mock_build.return_value.loop_start.assert_not_called()
