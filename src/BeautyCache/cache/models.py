"""Request and response records passed between the proxy, fetcher and cache."""

import json
from dataclasses import dataclass, field, replace

from requests.structures import CaseInsensitiveDict

# Headers that make the origin answer 304 instead of sending a body
CONDITIONAL_HEADERS = ('If-None-Match', 'If-Modified-Since', 'If-Match', 'If-Unmodified-Since', 'If-Range')


def _headers(value) -> CaseInsensitiveDict:
    if isinstance(value, CaseInsensitiveDict):
        return value.copy()
    return CaseInsensitiveDict(value or {})


def _header_fields(value) -> list[tuple[str, str]]:
    # Response headers stay an ordered list so repeated fields survive
    if value is None:
        return []
    if hasattr(value, 'items'):
        value = value.items()
    return [(str(k), str(v)) for k, v in value]


@dataclass
class ProxyRequest:
    """A request seen by the proxy."""

    method: str
    url: str
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    content: bytes | None = None

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = _headers(self.headers)

    @property
    def is_navigation(self) -> bool:
        """Whether this request loads a top-level HTML document."""
        mode = self.headers.get('Sec-Fetch-Mode', '').lower()
        if mode:
            return mode == 'navigate'
        # Clients without Fetch Metadata: an HTML GET is a page load
        accept = self.headers.get('Accept', '').lower()
        return self.method == 'GET' and 'text/html' in accept

    def with_cache_busting(self) -> 'ProxyRequest':
        """Copy that forces the origin to revalidate and send a full body."""
        headers = self.headers.copy()
        for name in CONDITIONAL_HEADERS:
            headers.pop(name, None)
        headers['Cache-Control'] = 'no-cache'
        headers['Pragma'] = 'no-cache'
        return replace(self, headers=headers)


@dataclass
class CachedResponse:
    """A response as stored in, or served from, a cache store."""

    url: str
    status_code: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    content: bytes = b''

    def __post_init__(self):
        self.headers = _header_fields(self.headers)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def get_all(self, name: str) -> list[str]:
        """Every value sent for a header, in order (e.g. each Set-Cookie)."""
        name = name.lower()
        return [v for k, v in self.headers if k.lower() == name]

    def header(self, name: str, default: str = '') -> str:
        values = self.get_all(name)
        return ', '.join(values) if values else default

    @property
    def content_type(self) -> str:
        return self.header('Content-Type')

    def clone(self) -> 'CachedResponse':
        return CachedResponse(self.url, self.status_code, list(self.headers), bytes(self.content))

    def json(self):
        return json.loads(self.content)

    @classmethod
    def empty_json(cls, url: str) -> 'CachedResponse':
        """Well-formed empty payload served when JSON data is unavailable."""
        return cls(url, 200, {'Content-Type': 'application/json'}, b'{}')
