"""Unit tests for the Reading result type and collector exceptions.

Example Run:
    pytest tests/unit/collector/providers/test_base.py -v
"""

import pytest

from collector.providers.base import (
    CollectorError,
    ReadStatus,
    Reading,
    SamplingError,
    UnsupportedPlatformError,
)


class TestReading:
    """Test suite for Reading."""

    def test_ok_keeps_value(self):
        """Test OK readings carry their measurement, including zero."""
        assert Reading.ok(42.5).value == 42.5
        assert Reading.ok(0).is_ok is True

    def test_degraded_value_is_zero(self):
        """Test degraded readings always report 0."""
        reading = Reading.degraded("process 1234 exited")

        assert reading.status is ReadStatus.DEGRADED
        assert reading.value == 0.0
        assert reading.reason == "process 1234 exited"
        assert reading.unwrap() == 0.0

    def test_unwrap_fatal_raises_sampling_error(self):
        """Test unwrapping a FATAL reading raises with the cause chained."""
        cause = RuntimeError("counter exploded")
        reading = Reading.fatal(cause)

        with pytest.raises(SamplingError, match="counter exploded") as exc_info:
            reading.unwrap()

        assert exc_info.value.__cause__ is cause

    def test_readings_are_immutable(self):
        """Test a Reading cannot be modified after creation."""
        reading = Reading.ok(1.0)

        with pytest.raises(AttributeError):
            reading.value = 2.0


class TestExceptions:
    """Test suite for the collector exception hierarchy."""

    def test_unsupported_platform_message(self):
        """Test the error names the platform and the provider family."""
        error = UnsupportedPlatformError("darwin", "cpu")

        assert isinstance(error, CollectorError)
        assert error.platform_name == "darwin"
        assert error.family == "cpu"
        assert "darwin" in str(error)
        assert "cpu" in str(error)
