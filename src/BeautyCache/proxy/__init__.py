"""Proxy package: origin fetcher, cache controller addon and mitmproxy master."""

from .addons import OfflineCacheController, RequestKind, WorkerState
from .fetcher import NetworkError, NetworkFetcher
from .master import ProxyMaster

__all__ = [
    'NetworkError',
    'NetworkFetcher',
    'OfflineCacheController',
    'ProxyMaster',
    'RequestKind',
    'WorkerState',
]
