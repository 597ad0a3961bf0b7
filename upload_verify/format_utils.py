"""
Shared formatting utilities for consistent report and console output.
"""

from typing import Optional

BYTES_PER_KIB = 1024
BYTES_PER_MIB = 1024**2
BYTES_PER_GIB = 1024**3

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400


def format_bytes(num_bytes: Optional[int]) -> str:
    """
    Format byte count as human-readable string with appropriate units.

    Args:
        num_bytes: Number of bytes to format (None returns "n/a")

    Examples:
        >>> format_bytes(1024)
        '1.00 KiB'
        >>> format_bytes(None)
        'n/a'
    """
    if num_bytes is None:
        return "n/a"
    units = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]
    size = float(num_bytes)
    for unit in units[:-1]:
        if abs(size) < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} {units[-1]}"


def format_fixed_unit(num_bytes: int, divisor: int, unit: str) -> str:
    """Format bytes in one fixed unit, e.g. ``format_fixed_unit(n, BYTES_PER_MIB, "MB")``."""
    return f"{num_bytes / divisor:.2f} {unit}"


def format_duration(seconds: float) -> str:
    """Format seconds to human readable duration"""
    if seconds < SECONDS_PER_MINUTE:
        return f"{int(seconds)}s"
    if seconds < SECONDS_PER_HOUR:
        minutes = int(seconds / SECONDS_PER_MINUTE)
        secs = int(seconds % SECONDS_PER_MINUTE)
        return f"{minutes}m {secs}s"
    if seconds < SECONDS_PER_DAY:
        hours = int(seconds / SECONDS_PER_HOUR)
        minutes = int((seconds % SECONDS_PER_HOUR) / SECONDS_PER_MINUTE)
        return f"{hours}h {minutes}m"
    days = int(seconds / SECONDS_PER_DAY)
    hours = int((seconds % SECONDS_PER_DAY) / SECONDS_PER_HOUR)
    return f"{days}d {hours}h"
