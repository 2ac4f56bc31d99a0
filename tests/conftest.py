import threading

import pytest

from BeautyCache.cache import CachedResponse, CacheStorage, ProxyRequest
from BeautyCache.proxy.addons import OfflineCacheController
from BeautyCache.proxy.fetcher import NetworkError


ORIGIN = 'https://app.test'


class FakeFetcher:
    """Stands in for the network: canned responses, failures and gates per URL."""

    def __init__(self):
        self.responses: dict[str, CachedResponse] = {}
        self.failing: set[str] = set()
        self.offline = False
        self.gates: dict[str, threading.Event] = {}
        self.calls: list[ProxyRequest] = []
        self.in_flight = 0
        self._lock = threading.Lock()

    def serve(self, url, body, status=200, content_type='text/html'):
        if isinstance(body, str):
            body = body.encode()
        self.responses[url] = CachedResponse(url, status, {'Content-Type': content_type}, body)

    def fail(self, url):
        self.failing.add(url)

    def fetch(self, request):
        with self._lock:
            self.calls.append(request)
            self.in_flight += 1
        try:
            gate = self.gates.get(request.url)
            if gate is not None:
                gate.wait(5)
            if self.offline or request.url in self.failing:
                raise NetworkError(f'connection refused: {request.url}')
            response = self.responses.get(request.url)
            if response is None:
                return CachedResponse(request.url, 404, {'Content-Type': 'text/plain'}, b'not found')
            return response.clone()
        finally:
            with self._lock:
                self.in_flight -= 1


def url(path):
    return ORIGIN + path


def page(target):
    return ProxyRequest('GET', target, {'Sec-Fetch-Mode': 'navigate', 'Accept': 'text/html'})


def data(target):
    return ProxyRequest('GET', target, {'Sec-Fetch-Mode': 'cors', 'Accept': 'application/json'})


def asset(target):
    return ProxyRequest('GET', target, {'Sec-Fetch-Mode': 'no-cors', 'Accept': 'image/webp,*/*'})


@pytest.fixture
def storage(tmp_path):
    return CacheStorage(tmp_path / 'caches')


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def make_controller(storage, fetcher):
    controllers = []

    def factory(version='v4', namespace='app', precache_urls=(), origin=ORIGIN):
        controller = OfflineCacheController(
            storage, fetcher, origin, namespace, version, precache_urls
        )
        controllers.append(controller)
        return controller

    yield factory
    for controller in controllers:
        controller.done()
