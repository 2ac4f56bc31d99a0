"""Cache module: request/response records and the named cache stores."""

from .models import CachedResponse, ProxyRequest
from .storage import CacheStorage, CacheStore

__all__ = ['CacheStorage', 'CacheStore', 'CachedResponse', 'ProxyRequest']
