"""Offline cache controller addon - the site's service worker, run inside the proxy.

Every same-origin GET is sorted into one of three kinds, each with its own policy:

1. Navigation (HTML documents): network first, falling back to the cached page,
   then to the cached app shell ``/``.
2. JSON data (``*.json``): network first with cache busting, falling back to the
   cached copy, then to an empty ``{}`` payload.
3. Everything else: stale-while-revalidate.

Cross-origin traffic (analytics, trackers) is never touched.
"""

import asyncio
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Optional
from urllib.parse import urljoin, urlsplit

from mitmproxy import http

from ...cache import CachedResponse, CacheStorage, CacheStore, ProxyRequest
from ...utils import log_buffer, origin_of
from ..fetcher import NetworkError


class RequestKind(Enum):
    NAVIGATION = 'navigation'
    JSON = 'json'
    ASSET = 'asset'


class WorkerState(Enum):
    PARSED = 'parsed'
    INSTALLING = 'installing'
    INSTALLED = 'installed'
    ACTIVATING = 'activating'
    ACTIVATED = 'activated'
    REDUNDANT = 'redundant'


def classify_request(request: ProxyRequest) -> RequestKind:
    """Decide which caching policy applies to a request."""
    if request.is_navigation:
        return RequestKind.NAVIGATION
    if urlsplit(request.url).path.endswith('.json'):
        return RequestKind.JSON
    return RequestKind.ASSET


class OfflineCacheController:
    """Mitmproxy addon that applies per-kind caching policies to one site."""

    def __init__(
        self,
        storage: CacheStorage,
        fetcher,
        origin: str,
        namespace: str,
        version: str,
        precache_urls: Iterable[str] = (),
        max_workers: int = 4,
    ):
        """
        Initialize the controller.

        Args:
            storage: CacheStorage holding every named store
            fetcher: object with ``fetch(ProxyRequest) -> CachedResponse`` raising NetworkError
            origin: the application's own origin; other origins pass through
            namespace: cache namespace, shared by all versions
            version: current version; the live store is ``namespace-version``
            precache_urls: root-relative URLs fetched eagerly at install
        """
        if not version:
            raise ValueError('Cache version must not be empty')
        self.storage = storage
        self.fetcher = fetcher
        self.origin = origin_of(origin)
        self.namespace = namespace
        self.version = version
        self.precache_urls = list(precache_urls)
        self.state = WorkerState.PARSED
        # Blocking work stays off the proxy event loop. Disk, foreground fetches and
        # background refreshes get separate pools so slow refreshes cannot delay cache hits
        self._io_executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='cache_io')
        self._fetch_executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='cache_fetch')
        self._revalidate_executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix='cache_revalidate'
        )
        self._background: set[asyncio.Task] = set()

    @property
    def cache_name(self) -> str:
        return f'{self.namespace}-{self.version}'

    @property
    def cache_prefix(self) -> str:
        return f'{self.namespace}-'

    @property
    def is_controlling(self) -> bool:
        return self.state is WorkerState.ACTIVATED

    def resolve(self, path: str) -> str:
        """Absolute URL for a root-relative path on the app origin."""
        return urljoin(self.origin + '/', path)

    @staticmethod
    async def _offload(executor: ThreadPoolExecutor, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, partial(func, *args))

    async def _run(self, func, *args):
        """Run cache store work on the disk pool."""
        return await self._offload(self._io_executor, func, *args)

    async def _current_store(self) -> CacheStore:
        return await self._run(self.storage.open, self.cache_name)

    async def _fetch(self, request: ProxyRequest, background: bool = False) -> CachedResponse:
        executor = self._revalidate_executor if background else self._fetch_executor
        return await self._offload(executor, self.fetcher.fetch, request)

    # Lifecycle

    async def install(self) -> int:
        """
        Open the current store and precache the manifest, best effort.

        Returns:
            Number of manifest URLs cached
        """
        self.state = WorkerState.INSTALLING
        store = await self._current_store()
        cached = 0
        for path in self.precache_urls:
            request = ProxyRequest('GET', self.resolve(path))
            try:
                response = await self._fetch(request)
            except NetworkError as e:
                log_buffer.log('Install', f'Skipped {path}: {e}')
                continue
            if not response.ok:
                log_buffer.log('Install', f'Skipped {path}: HTTP {response.status_code}')
                continue
            if await self._run(store.put, request.url, response):
                cached += 1

        self.state = WorkerState.INSTALLED
        log_buffer.log('Install', f'{self.cache_name}: precached {cached}/{len(self.precache_urls)}')
        return cached

    async def activate(self) -> list[str]:
        """
        Purge stale stores of this namespace and start controlling clients.

        Returns:
            Names of the deleted stores
        """
        self.state = WorkerState.ACTIVATING
        names = await self._run(self.storage.keys)
        stale = [n for n in names if n.startswith(self.cache_prefix) and n != self.cache_name]
        for name in stale:
            await self._run(self.storage.delete, name)
            log_buffer.log('Activate', f'Purged stale store {name}')

        self.state = WorkerState.ACTIVATED
        log_buffer.log('Activate', f'{self.cache_name} now controlling {self.origin}')
        return stale

    async def start(self):
        """Install, then activate without waiting for old clients to go away."""
        await self.install()
        await self.activate()

    def unregister(self, purge: bool = True) -> list[str]:
        """
        Stop intercepting, optionally deleting every cache store.

        Returns:
            Names of the deleted stores
        """
        self.state = WorkerState.REDUNDANT
        log_buffer.log('Purge', f'{self.cache_name} unregistered')
        if not purge:
            return []
        removed = self.storage.clear()
        log_buffer.log('Purge', f'Deleted {len(removed)} cache store(s)')
        return removed

    # Fetch interception

    async def handle(self, request: ProxyRequest) -> Optional[CachedResponse]:
        """
        Answer a request from the cache policies.

        Returns:
            The response to send, or None to let the request through untouched

        Raises:
            NetworkError: neither network nor cache could answer
        """
        if not self.is_controlling:
            return None
        if origin_of(request.url) != self.origin:
            return None
        if request.method != 'GET':
            return None

        kind = classify_request(request)
        if kind is RequestKind.NAVIGATION:
            return await self._network_first_page(request)
        if kind is RequestKind.JSON:
            return await self._network_first_data(request)
        return await self._stale_while_revalidate(request)

    async def _network_first_page(self, request: ProxyRequest) -> CachedResponse:
        store = await self._current_store()
        try:
            response = await self._fetch(request)
        except NetworkError as e:
            log_buffer.log('Fetch', f'Offline page {request.url}: {e}')
            cached = await self._run(store.match, request.url)
            if cached is None:
                cached = await self._run(store.match, self.resolve('/'))
            if cached is None:
                raise
            return cached

        if response.ok:
            await self._run(store.put, request.url, response.clone())
        return response

    async def _network_first_data(self, request: ProxyRequest) -> CachedResponse:
        store = await self._current_store()
        try:
            response = await self._fetch(request.with_cache_busting())
        except NetworkError as e:
            log_buffer.log('Fetch', f'Offline data {request.url}: {e}')
            cached = await self._run(store.match, request.url)
            if cached is not None:
                return cached
            log_buffer.log('Fetch', f'No cached copy of {request.url}, serving empty JSON')
            return CachedResponse.empty_json(request.url)

        if response.ok:
            await self._run(store.put, request.url, response.clone())
        return response

    async def _stale_while_revalidate(self, request: ProxyRequest) -> CachedResponse:
        store = await self._current_store()
        cached = await self._run(store.match, request.url)
        if cached is not None:
            self._schedule(self._revalidate(store, request))
            return cached

        try:
            response = await self._fetch(request)
        except NetworkError:
            cached = await self._run(store.match, request.url)
            if cached is None:
                raise
            return cached

        if response.status_code == 200:
            await self._run(store.put, request.url, response.clone())
        return response

    async def _revalidate(self, store: CacheStore, request: ProxyRequest):
        try:
            response = await self._fetch(request, background=True)
        except NetworkError as e:
            log_buffer.log('Fetch', f'Revalidation failed for {request.url}: {e}')
            return
        if response.status_code == 200:
            await self._run(store.put, request.url, response)

    def _schedule(self, coro):
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_background(self):
        """Wait until every in-flight revalidation has settled."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # mitmproxy hooks

    @staticmethod
    def request_from_flow(flow: http.HTTPFlow) -> ProxyRequest:
        return ProxyRequest(
            method=flow.request.method,
            url=flow.request.pretty_url,
            headers=dict(flow.request.headers.items()),
            content=flow.request.raw_content or None,
        )

    async def request(self, flow: http.HTTPFlow):
        """Answer the flow from the cache policies when they apply."""
        if flow.response is not None:
            return
        request = self.request_from_flow(flow)
        try:
            response = await self.handle(request)
        except NetworkError as e:
            log_buffer.log('Fetch', f'Failed {request.url}: {e}')
            flow.response = http.Response.make(
                502, f'Unable to reach {request.url}'.encode(), {'Content-Type': 'text/plain'}
            )
            return
        except Exception as e:
            log_buffer.log('Error', f'Cache controller error for {request.url}: {e}')
            return

        if response is not None:
            # http.Headers keeps repeated fields such as Set-Cookie
            headers = http.Headers([
                (name.encode('utf-8', 'surrogateescape'), value.encode('utf-8', 'surrogateescape'))
                for name, value in response.headers
            ])
            flow.response = http.Response.make(response.status_code, response.content, headers)

    def done(self):
        """Release the worker pools when mitmproxy shuts down."""
        for executor in (self._io_executor, self._fetch_executor, self._revalidate_executor):
            executor.shutdown(wait=False)
