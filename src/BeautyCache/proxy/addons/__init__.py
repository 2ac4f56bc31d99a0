"""Mitmproxy addons."""

from .offline_cache import (
    OfflineCacheController,
    RequestKind,
    WorkerState,
    classify_request,
)

__all__ = [
    'OfflineCacheController',
    'RequestKind',
    'WorkerState',
    'classify_request',
]
