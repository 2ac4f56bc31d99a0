"""Network fetcher used by the cache controller to reach the origin."""

import requests
from requests.adapters import HTTPAdapter

from ..cache import CachedResponse, ProxyRequest
from ..utils import APP_NAME, APP_VERSION

# Not forwarded to the origin; Accept-Encoding is left to requests so it can decode the body
DROPPED_REQUEST_HEADERS = {
    'accept-encoding',
    'connection',
    'host',
    'keep-alive',
    'proxy-authorization',
    'proxy-connection',
    'te',
    'trailer',
    'transfer-encoding',
    'upgrade',
}

# The body handed back is already decoded and re-framed by the proxy
DROPPED_RESPONSE_HEADERS = {
    'connection',
    'content-encoding',
    'content-length',
    'keep-alive',
    'transfer-encoding',
}


class NetworkError(Exception):
    """The origin could not be reached (DNS, connect, timeout, reset)."""


class NetworkFetcher:
    """Performs origin requests through a pooled requests session."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._session = requests.Session()
        # Never route back through our own proxy via HTTP(S)_PROXY
        self._session.trust_env = False
        self._session.headers.update({'User-Agent': f'{APP_NAME}/{APP_VERSION}'})
        adapter = HTTPAdapter(pool_connections=10, pool_maxsize=20, max_retries=0, pool_block=False)
        self._session.mount('http://', adapter)
        self._session.mount('https://', adapter)

    @staticmethod
    def forward_headers(request: ProxyRequest) -> dict[str, str]:
        return {
            name: value
            for name, value in request.headers.items()
            if name.lower() not in DROPPED_REQUEST_HEADERS
        }

    @staticmethod
    def to_cached_response(response: requests.Response) -> CachedResponse:
        # response.headers joins repeated fields; the urllib3 headers keep each one
        raw_headers = getattr(response.raw, 'headers', None)
        fields = raw_headers.items() if raw_headers is not None else response.headers.items()
        headers = [
            (name, value)
            for name, value in fields
            if name.lower() not in DROPPED_RESPONSE_HEADERS
        ]
        return CachedResponse(
            url=response.url,
            status_code=response.status_code,
            headers=headers,
            content=response.content,
        )

    def fetch(self, request: ProxyRequest) -> CachedResponse:
        """
        Send a request to the origin.

        Any HTTP status counts as a response; only transport failures raise.

        Raises:
            NetworkError: if the origin could not be reached
        """
        try:
            response = self._session.request(
                request.method,
                request.url,
                headers=self.forward_headers(request),
                data=request.content or None,
                timeout=self.timeout,
                allow_redirects=False,
            )
            # Reading the body can still fail mid-stream
            return self.to_cached_response(response)
        except requests.RequestException as e:
            raise NetworkError(f'{request.method} {request.url}: {e}') from e

    def close(self):
        self._session.close()
