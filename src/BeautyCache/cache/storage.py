"""Disk-backed named cache stores, keyed by request URL."""

import gzip
import hashlib
import json
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..utils import log_buffer
from .models import CachedResponse

# Bodies above this size are gzip-compressed on disk
COMPRESS_THRESHOLD = 10240


def _validate_name(name: str) -> str:
    if not name or name in ('.', '..') or '/' in name or '\\' in name:
        raise ValueError(f'Invalid cache store name: {name!r}')
    return name


class CacheStore:
    """One named store: request URL -> cached response."""

    def __init__(self, name: str, directory: Path):
        self.name = _validate_name(name)
        self.directory = directory
        self.index_file = directory / 'index.json'
        self._lock = threading.Lock()
        self._deleted = False

        self.directory.mkdir(parents=True, exist_ok=True)
        self.index = self._load_index()

    def _load_index(self) -> dict:
        """Load store index from disk."""
        if self.index_file.exists():
            try:
                with self.index_file.open('r', encoding='utf-8') as f:
                    data = json.load(f)
                if isinstance(data.get('entries'), dict):
                    return data
            except (json.JSONDecodeError, OSError, AttributeError) as e:
                log_buffer.log('Cache', f'Index for {self.name} unreadable, starting empty: {e}')
        return {'name': self.name, 'entries': {}}

    def _save_index(self):
        """Save store index to disk."""
        tmp = self.index_file.with_suffix('.tmp')
        with tmp.open('w', encoding='utf-8') as f:
            json.dump(self.index, f, indent=2)
        tmp.replace(self.index_file)

    @staticmethod
    def _body_filename(url: str, body_hash: str) -> str:
        # A new body never overwrites the file the saved index points at
        return f"{hashlib.sha256(url.encode('utf-8')).hexdigest()[:32]}-{body_hash}.bin"

    @property
    def deleted(self) -> bool:
        return self._deleted

    def put(self, url: str, response: CachedResponse) -> bool:
        """
        Store a response under a URL, replacing any previous entry.

        Returns:
            True if stored successfully
        """
        with self._lock:
            if self._deleted:
                return False
            entries = self.index['entries']
            previous = entries.get(url)
            old_file = previous.get('file') if previous else None
            body_path = None
            try:
                data = response.content
                body_hash = hashlib.sha256(data).hexdigest()[:16]
                body_path = self.directory / self._body_filename(url, body_hash)
                compressed = len(data) > COMPRESS_THRESHOLD
                if compressed:
                    with gzip.open(body_path, 'wb') as f:
                        f.write(data)
                else:
                    body_path.write_bytes(data)

                entries[url] = {
                    'url': url,
                    'response_url': response.url,
                    'status': response.status_code,
                    'headers': [[name, value] for name, value in response.headers],
                    'file': body_path.name,
                    'size': len(data),
                    'compressed': compressed,
                    'hash': body_hash,
                    'cached_at': datetime.now().isoformat(),
                }
                self._save_index()
            except OSError as e:
                # Roll back so memory matches the index still on disk
                if previous is None:
                    entries.pop(url, None)
                else:
                    entries[url] = previous
                if body_path is not None and body_path.name != old_file:
                    body_path.unlink(missing_ok=True)
                log_buffer.log('Cache', f'Failed to store {url} in {self.name}: {e}')
                return False

            if old_file and old_file != body_path.name:
                try:
                    (self.directory / old_file).unlink(missing_ok=True)
                except OSError as e:
                    log_buffer.log('Cache', f'Could not remove old body of {url}: {e}')
            return True

    def match(self, url: str) -> Optional[CachedResponse]:
        """Return the cached response for a URL, or None."""
        with self._lock:
            if self._deleted:
                return None
            entry = self.index['entries'].get(url)
            if entry is None:
                return None
            try:
                body_path = self.directory / entry['file']
                if entry.get('compressed', False):
                    with gzip.open(body_path, 'rb') as f:
                        data = f.read()
                else:
                    data = body_path.read_bytes()
            except (OSError, KeyError) as e:
                log_buffer.log('Cache', f'Failed to read {url} from {self.name}: {e}')
                return None
            return CachedResponse(
                url=entry.get('response_url', url),
                status_code=entry['status'],
                headers=entry.get('headers', {}),
                content=data,
            )

    def delete(self, url: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        with self._lock:
            entry = self.index['entries'].pop(url, None)
            if entry is None:
                return False
            try:
                (self.directory / entry['file']).unlink(missing_ok=True)
                self._save_index()
            except OSError as e:
                log_buffer.log('Cache', f'Failed to delete {url} from {self.name}: {e}')
            return True

    def entries(self) -> list[dict]:
        """Index entries (metadata only), oldest first."""
        with self._lock:
            entries = [dict(e) for e in self.index['entries'].values()]
        entries.sort(key=lambda e: e.get('cached_at', ''))
        return entries

    def keys(self) -> list[str]:
        """Cached URLs, oldest first."""
        return [e['url'] for e in self.entries()]

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self.index['entries']

    def __len__(self) -> int:
        with self._lock:
            return len(self.index['entries'])

    def stats(self) -> dict:
        """Get store statistics."""
        with self._lock:
            entries = dict(self.index['entries'])
        return {
            'name': self.name,
            'entries': len(entries),
            'total_size': sum(e.get('size', 0) for e in entries.values()),
        }

    def _destroy(self):
        """Remove the store from disk (called by CacheStorage.delete)."""
        with self._lock:
            self._deleted = True
            self.index = {'name': self.name, 'entries': {}}
            shutil.rmtree(self.directory, ignore_errors=True)


class CacheStorage:
    """All named cache stores under one root directory."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._stores: dict[str, CacheStore] = {}
        self._lock = threading.Lock()

    def open(self, name: str) -> CacheStore:
        """Open a store, creating it if absent."""
        _validate_name(name)
        with self._lock:
            store = self._stores.get(name)
            if store is None or store.deleted:
                store = CacheStore(name, self.root / name)
                self._stores[name] = store
            return store

    def has(self, name: str) -> bool:
        return name in self.keys()

    def keys(self) -> list[str]:
        """Names of all stores on disk, sorted."""
        with self._lock:
            if not self.root.exists():
                return []
            return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def delete(self, name: str) -> bool:
        """Delete a whole store. Returns True if it existed."""
        _validate_name(name)
        with self._lock:
            store = self._stores.pop(name, None)
            path = self.root / name
            existed = path.is_dir()
            if store is not None:
                store._destroy()
            elif existed:
                shutil.rmtree(path, ignore_errors=True)
        if existed:
            log_buffer.log('Cache', f'Deleted cache store {name}')
        return existed

    def match(self, url: str) -> Optional[CachedResponse]:
        """Search every store, in name order, for a URL."""
        for name in self.keys():
            response = self.open(name).match(url)
            if response is not None:
                return response
        return None

    def clear(self) -> list[str]:
        """Delete every store. Returns the deleted names."""
        names = self.keys()
        for name in names:
            self.delete(name)
        return names

    def stats(self) -> list[dict]:
        """Statistics for every store."""
        return [self.open(name).stats() for name in self.keys()]
