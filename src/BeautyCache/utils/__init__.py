"""Shared utilities: paths, constants, logging and threading helpers."""

from .logging import LogBuffer, log_buffer
from .paths import (
    APP_NAME,
    APP_ORIGIN,
    APP_VERSION,
    BRANDING_IMAGES,
    CACHE_DIR,
    CACHE_NAMESPACE,
    CACHE_VERSION,
    CONFIG_DIR,
    CONFIG_FILE,
    DEFAULT_LANGUAGE,
    DEFAULT_SETTINGS,
    MITMPROXY_DIR,
    SUPPORTED_LANGUAGES,
    data_file_url,
    default_precache_urls,
)
from .threading import run_in_thread
from .urls import origin_of

__all__ = [
    'APP_NAME',
    'APP_ORIGIN',
    'APP_VERSION',
    'BRANDING_IMAGES',
    'CACHE_DIR',
    'CACHE_NAMESPACE',
    'CACHE_VERSION',
    'CONFIG_DIR',
    'CONFIG_FILE',
    'DEFAULT_LANGUAGE',
    'DEFAULT_SETTINGS',
    'LogBuffer',
    'MITMPROXY_DIR',
    'SUPPORTED_LANGUAGES',
    'data_file_url',
    'default_precache_urls',
    'log_buffer',
    'origin_of',
    'run_in_thread',
]
