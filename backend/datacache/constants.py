"""
School Dash Cache Global Constants

Centralized location for all system-wide constants used across the cache layer.
"""

import time

# Storage namespace shared with the web client's localStorage blobs
CACHE_STORAGE_KEY = "school-dash-cache"
CACHE_KEY_SEPARATOR = "-"

# Five minutes
DEFAULT_TTL_MS = 5 * 60 * 1000


def current_time_ms() -> int:
    """Get current wall-clock time in milliseconds since epoch.

    Note: Use this function instead of a constant to get real-time timestamps.
    """
    return time.time_ns() // 1_000_000


# Application Constants
APP_NAME = "School Dash Cache"
APP_VERSION = "0.1.0"
