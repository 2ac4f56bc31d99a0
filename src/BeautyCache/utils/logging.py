"""Logging utilities."""

import threading
from collections import deque
from datetime import datetime
from typing import Any


class LogBuffer:
    """Thread-safe bounded log buffer with batched callback notifications."""

    def __init__(self, max_entries: int = 5000, batch_window: float = 0.05):
        self._buffer: deque[str] = deque(maxlen=max_entries)
        self._callbacks: list[Any] = []
        self._lock = threading.Lock()
        self._batch_window = batch_window
        self._pending_notifications = False
        self._batch_timer = None

    def log(self, category: str, message: str):
        """Add a log entry (callbacks are batched to reduce overhead)."""
        timestamp = datetime.now().strftime('%H:%M:%S')
        entry = f'[{timestamp}] [{category}] {message}'

        with self._lock:
            self._buffer.append(entry)

            if self._callbacks and not self._pending_notifications:
                self._pending_notifications = True
                self._batch_timer = threading.Timer(self._batch_window, self._notify_callbacks)
                self._batch_timer.daemon = True
                self._batch_timer.start()

    def _notify_callbacks(self):
        """Notify all callbacks (called after batch window)."""
        with self._lock:
            self._pending_notifications = False
            callbacks_copy = self._callbacks.copy()

        # Outside the lock: callbacks may log themselves
        for callback in callbacks_copy:
            try:
                callback()
            except Exception:
                pass

    def get_all(self) -> list[str]:
        """Get all log entries."""
        with self._lock:
            return list(self._buffer)

    def get_text(self) -> str:
        """Get all logs as a single text string."""
        entries = self.get_all()
        return '\n'.join(entries) if entries else 'No logs yet.'

    def find(self, category: str) -> list[str]:
        """Get entries logged under one category."""
        tag = f'[{category}]'
        return [entry for entry in self.get_all() if tag in entry]

    def clear(self):
        """Drop all entries."""
        with self._lock:
            self._buffer.clear()

    def add_callback(self, callback: Any):
        """Add a callback to be notified when new logs are added."""
        with self._lock:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Any):
        """Remove a callback."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


# Global log buffer
log_buffer = LogBuffer()
