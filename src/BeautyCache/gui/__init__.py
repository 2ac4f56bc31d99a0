"""GUI package."""

from .cache_stores import CacheStoresWindow
from .logs import LogsWindow
from .purge_cache import PurgeCacheWindow

__all__ = [
    'CacheStoresWindow',
    'LogsWindow',
    'PurgeCacheWindow',
]
