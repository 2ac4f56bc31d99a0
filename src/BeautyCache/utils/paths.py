"""Application paths and constants."""

from pathlib import Path

# Application metadata
APP_NAME = 'Beauty Land Cache'
APP_VERSION = '0.4.0'

# Site being proxied
APP_ORIGIN = 'https://beautylandcard.vip'
CACHE_NAMESPACE = 'beauty-land-card'
CACHE_VERSION = 'v4'

# Clinic data ships one JSON file per language
SUPPORTED_LANGUAGES = ('en', 'ar', 'ku')
DEFAULT_LANGUAGE = 'en'

BRANDING_IMAGES = (
    '/images/beauty-final.png',
    '/images/beauty-final.webp',
)

# Application directories
CONFIG_DIR = Path.home() / '.beauty-land-card'
CONFIG_FILE = CONFIG_DIR / 'settings.json'
CACHE_DIR = CONFIG_DIR / 'CacheStorage'
MITMPROXY_DIR = Path.home() / '.mitmproxy'


def data_file_url(lang: str) -> str:
    """Root-relative URL of the clinics data file for a language."""
    safe = lang if lang in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE
    return f'/clinics_{safe}.json'


def default_precache_urls() -> list[str]:
    """App shell, branding images, then one data file per language."""
    return ['/', *BRANDING_IMAGES, *(data_file_url(lang) for lang in SUPPORTED_LANGUAGES)]


# Default settings
DEFAULT_SETTINGS = {
    'app_origin': APP_ORIGIN,
    'cache_namespace': CACHE_NAMESPACE,
    'cache_version': CACHE_VERSION,
    'precache_urls': default_precache_urls(),
    'listen_port': 8080,
    'fetch_timeout': 10.0,
    'open_logs_on_launch': False,
}
