"""URL helpers."""

from urllib.parse import urlsplit

DEFAULT_PORTS = {'http': 80, 'https': 443}


def origin_of(url: str) -> str:
    """Normalised ``scheme://host[:port]`` of a URL (default ports omitted)."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or '').lower()
    if ':' in host:
        host = f'[{host}]'
    port = parts.port
    if port is None or port == DEFAULT_PORTS.get(scheme):
        return f'{scheme}://{host}'
    return f'{scheme}://{host}:{port}'
