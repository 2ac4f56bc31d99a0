"""Configuration management."""

import json
import threading
from copy import deepcopy
from pathlib import Path

from ..utils import CONFIG_FILE, DEFAULT_SETTINGS, log_buffer, origin_of


class ConfigManager:
    """Manages application settings persisted as JSON."""

    def __init__(self, config_file: Path = CONFIG_FILE):
        self.config_file = Path(config_file)
        self._lock = threading.Lock()
        self.settings = self._load_settings()

    def _load_settings(self) -> dict:
        """Load settings from disk."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        if self.config_file.exists():
            try:
                with self.config_file.open(encoding='utf-8') as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    return {**deepcopy(DEFAULT_SETTINGS), **loaded}
            except (json.JSONDecodeError, OSError) as e:
                log_buffer.log('Config', f'Ignoring unreadable settings: {e}')
        return deepcopy(DEFAULT_SETTINGS)

    def _save_settings(self):
        """Save settings to disk."""
        with self._lock:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with self.config_file.open('w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=2)

    def _set(self, key: str, value):
        self.settings[key] = value
        self._save_settings()

    @property
    def app_origin(self) -> str:
        """Get the origin the cache controller serves."""
        return self.settings.get('app_origin', DEFAULT_SETTINGS['app_origin'])

    @app_origin.setter
    def app_origin(self, value: str):
        origin = origin_of(value)
        if not origin.startswith(('http://', 'https://')) or origin.endswith('://'):
            raise ValueError(f'Not an http(s) origin: {value!r}')
        self._set('app_origin', origin)

    @property
    def cache_namespace(self) -> str:
        return self.settings.get('cache_namespace', DEFAULT_SETTINGS['cache_namespace'])

    @cache_namespace.setter
    def cache_namespace(self, value: str):
        if not value or '/' in value:
            raise ValueError(f'Invalid cache namespace: {value!r}')
        self._set('cache_namespace', value)

    @property
    def cache_version(self) -> str:
        return self.settings.get('cache_version', DEFAULT_SETTINGS['cache_version'])

    @cache_version.setter
    def cache_version(self, value: str):
        if not value or '/' in value:
            raise ValueError(f'Invalid cache version: {value!r}')
        self._set('cache_version', value)

    @property
    def cache_name(self) -> str:
        """Name of the current cache store."""
        return f'{self.cache_namespace}-{self.cache_version}'

    @property
    def precache_urls(self) -> list[str]:
        return list(self.settings.get('precache_urls', DEFAULT_SETTINGS['precache_urls']))

    @precache_urls.setter
    def precache_urls(self, value: list[str]):
        urls = list(value)
        for url in urls:
            if not url.startswith('/'):
                raise ValueError(f'Precache URLs must be root-relative: {url!r}')
        self._set('precache_urls', urls)

    @property
    def listen_port(self) -> int:
        return int(self.settings.get('listen_port', DEFAULT_SETTINGS['listen_port']))

    @listen_port.setter
    def listen_port(self, value: int):
        port = int(value)
        if not 0 < port < 65536:
            raise ValueError(f'Port out of range: {value!r}')
        self._set('listen_port', port)

    @property
    def fetch_timeout(self) -> float:
        return float(self.settings.get('fetch_timeout', DEFAULT_SETTINGS['fetch_timeout']))

    @fetch_timeout.setter
    def fetch_timeout(self, value: float):
        if float(value) <= 0:
            raise ValueError('Fetch timeout must be positive')
        self._set('fetch_timeout', float(value))

    @property
    def open_logs_on_launch(self) -> bool:
        return self.settings.get('open_logs_on_launch', False)

    @open_logs_on_launch.setter
    def open_logs_on_launch(self, value: bool):
        self._set('open_logs_on_launch', bool(value))

    def save(self):
        """Save settings."""
        self._save_settings()
