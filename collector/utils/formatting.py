"""Unit conversion and formatting helpers.

Conversions used when building samples, plus the human-readable
formatters used in log lines.
"""

BYTES_PER_MB = 1024**2
BYTES_PER_GB = 1024**3


def kb_to_mb(kilobytes: float) -> float:
    """Convert kilobytes to megabytes.

    Example:
        >>> kb_to_mb(2048)
        2.0
    """
    return kilobytes / 1024.0


def bytes_to_mb(bytes_value: float) -> float:
    """Convert bytes to megabytes.

    Example:
        >>> bytes_to_mb(1048576)
        1.0
    """
    return bytes_value / BYTES_PER_MB


def bytes_to_gb(bytes_value: float) -> float:
    """Convert bytes to gigabytes."""
    return bytes_value / BYTES_PER_GB


def clamp_percentage(value: float) -> float:
    """Clamp a percentage into [0, 100].

    Example:
        >>> clamp_percentage(-0.3)
        0.0
        >>> clamp_percentage(101.2)
        100.0
    """
    return max(0.0, min(100.0, float(value)))


def format_bytes(bytes_value: float, decimal_places: int = 1) -> str:
    """Format bytes into human-readable size.

    Args:
        bytes_value: Size in bytes to format.
        decimal_places: Number of decimal places to display (default: 1).

    Returns:
        Formatted string (e.g., "1.5 GB", "512.0 MB").

    Example:
        >>> format_bytes(1536000000)
        '1.4 GB'
        >>> format_bytes(1024)
        '1.0 KB'
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if bytes_value < 1024.0:
            return f"{bytes_value:.{decimal_places}f} {unit}"
        bytes_value /= 1024.0
    return f"{bytes_value:.{decimal_places}f} PB"


def format_percentage(value: float, decimal_places: int = 1) -> str:
    """Format a value as a percentage string.

    Example:
        >>> format_percentage(75.543)
        '75.5%'
    """
    return f"{value:.{decimal_places}f}%"
