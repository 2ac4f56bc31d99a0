"""Proxy master module."""

import asyncio
import threading
from pathlib import Path

from mitmproxy import certs
from mitmproxy.options import Options
from mitmproxy.tools.dump import DumpMaster

from ..cache import CacheStorage
from ..utils import CACHE_DIR, MITMPROXY_DIR, log_buffer
from .addons import OfflineCacheController
from .fetcher import NetworkFetcher


def ensure_ca_certificate() -> Path | None:
    """Create the mitmproxy CA if needed and return the PEM browsers must trust."""
    MITMPROXY_DIR.mkdir(exist_ok=True)
    certs.CertStore.from_store(str(MITMPROXY_DIR), 'mitmproxy', 2048)
    ca_file = MITMPROXY_DIR / 'mitmproxy-ca-cert.pem'
    return ca_file if ca_file.exists() else None


class ProxyMaster:
    """Manages the mitmproxy instance and the cache controller inside it."""

    def __init__(self, config_manager, storage: CacheStorage | None = None, fetcher=None):
        self.config_manager = config_manager
        self.storage = storage if storage is not None else CacheStorage(CACHE_DIR)
        self.fetcher = fetcher if fetcher is not None else NetworkFetcher(config_manager.fetch_timeout)
        self.controller: OfflineCacheController | None = None
        self._master = None
        self._running = False
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread = None

    @property
    def is_running(self) -> bool:
        """Check if proxy is running."""
        return self._running

    @property
    def status(self) -> str:
        if not self._running:
            return 'Stopped'
        if self.controller is not None and self.controller.is_controlling:
            return 'Controlling'
        return 'Starting'

    def build_controller(self) -> OfflineCacheController:
        """Create a controller from the current settings."""
        config = self.config_manager
        return OfflineCacheController(
            storage=self.storage,
            fetcher=self.fetcher,
            origin=config.app_origin,
            namespace=config.cache_namespace,
            version=config.cache_version,
            precache_urls=config.precache_urls,
        )

    async def _run_proxy(self):
        """Run the proxy (internal)."""
        self._running = True
        self.controller = self.build_controller()
        port = self.config_manager.listen_port

        self._master = DumpMaster(
            Options(mode=[f'regular@{port}']),
            with_termlog=False,
            with_dumper=False,
        )
        self._master.addons.add(self.controller)
        proxy_task = asyncio.create_task(self._master.run())

        try:
            if ca_file := ensure_ca_certificate():
                log_buffer.log('Certificate', f'Trust {ca_file} in the browser for HTTPS')
            else:
                log_buffer.log('Certificate', 'CA certificate not found, HTTPS will fail')
        except OSError as e:
            log_buffer.log('Certificate', f'CA setup failed: {e}')

        log_buffer.log('Proxy', f'Listening on 127.0.0.1:{port} for {self.controller.origin}')

        try:
            await self.controller.start()
            done, pending = await asyncio.wait(
                [proxy_task, asyncio.create_task(self._wait_for_stop())],
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        except Exception as e:
            log_buffer.log('Error', f'Proxy error: {e}')
        finally:
            await self.controller.wait_for_background()
            if self._master:
                try:
                    self._master.shutdown()
                except Exception as e:
                    log_buffer.log('Proxy', f'Shutdown: {e}')
            self._running = False
            log_buffer.log('Proxy', 'Stopped')

    async def _wait_for_stop(self):
        """Wait for stop event."""
        while not self._stop_event.is_set():
            await asyncio.sleep(0.1)

    def start(self):
        """Start the proxy in a background thread."""
        with self._lock:
            if self._running:
                return

            self._stop_event.clear()

            def run_proxy_thread():
                try:
                    asyncio.run(self._run_proxy())
                except Exception as e:
                    log_buffer.log('Error', f'Proxy failed: {e}')
                    self._running = False

            self._thread = threading.Thread(target=run_proxy_thread, name='proxy', daemon=True)
            self._thread.start()

    def stop(self):
        """Stop the proxy."""
        with self._lock:
            if not self._running:
                return

            log_buffer.log('Proxy', 'Stopping proxy...')
            self._stop_event.set()

        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)
            if self._thread.is_alive():
                log_buffer.log('Proxy', 'Warning: Proxy thread did not stop cleanly')

    def unregister(self, purge_caches: bool = True) -> list[str]:
        """Unregister the controller, optionally purge every cache store, and stop. Returns status messages."""
        messages = []

        if self.controller is not None:
            self.controller.unregister(purge=False)
            messages.append(f'Unregistered {self.controller.cache_name}')
        else:
            messages.append('No controller registered')

        if purge_caches:
            removed = self.storage.clear()
            if removed:
                messages.extend(f'Deleted cache store {name}' for name in removed)
            else:
                messages.append('No cache stores found')

        if self._running:
            self.stop()
            messages.append('Proxy stopped')

        for message in messages:
            log_buffer.log('Purge', message)
        return messages
