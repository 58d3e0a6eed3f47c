"""Unit tests for unit conversion and formatting helpers.

Example Run:
    pytest tests/unit/collector/utils/test_formatting.py -v
"""

import pytest

from collector.utils.formatting import (
    bytes_to_gb,
    bytes_to_mb,
    clamp_percentage,
    format_bytes,
    format_percentage,
    kb_to_mb,
)


class TestConversions:
    """Test suite for unit conversions."""

    def test_kb_to_mb(self):
        assert kb_to_mb(2048) == 2.0

    def test_bytes_to_mb(self):
        assert bytes_to_mb(3 * 1024**2) == 3.0

    def test_bytes_to_gb(self):
        assert bytes_to_gb(1024**3) == 1.0


class TestClampPercentage:
    """Test suite for clamp_percentage."""

    @pytest.mark.parametrize("value, expected", [(-5, 0.0), (0, 0.0), (42.5, 42.5), (100, 100.0), (250.1, 100.0)])
    def test_clamps_into_range(self, value, expected):
        """Test values are clamped into [0, 100]."""
        assert clamp_percentage(value) == expected


class TestFormatting:
    """Test suite for human-readable formatters."""

    def test_format_bytes(self):
        assert format_bytes(1024) == "1.0 KB"
        assert format_bytes(512) == "512.0 B"
        assert format_bytes(5 * 1024**3) == "5.0 GB"

    def test_format_percentage(self):
        assert format_percentage(75.543) == "75.5%"
