"""
School Dash data cache.

Read-through TTL cache with volatile and persistent tiers.
"""

from .constants import APP_VERSION as __version__
