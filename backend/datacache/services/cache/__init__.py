"""
Cache services.

``CacheManager`` is the shared two-tier cache; ``DataCacheController`` binds
one key to the coroutine that produces its value.
"""

from .cache_manager import CacheManager
from .data_cache import ControllerState, DataCacheController

__all__ = ["CacheManager", "ControllerState", "DataCacheController"]
