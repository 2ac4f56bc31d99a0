"""Purge caches window."""

import time

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QDialog, QLabel, QPushButton, QTextEdit, QVBoxLayout

from ..utils import APP_NAME, run_in_thread


class PurgeCacheWindow(QDialog):
    """Unregisters the cache controller and deletes every cache store."""

    log_signal = pyqtSignal(str)
    done_signal = pyqtSignal()

    def __init__(self, proxy_master):
        super().__init__()
        self.proxy_master = proxy_master
        self.setWindowTitle(f'{APP_NAME} - Purge Caches')
        self.setFixedSize(420, 220)
        self._setup_ui()
        self._start_purge()

    def _setup_ui(self):
        """Setup the UI."""
        layout = QVBoxLayout()
        layout.setContentsMargins(20, 20, 20, 20)

        title_label = QLabel('Unregistering and purging caches...')
        title_label.setStyleSheet('font-size: 11pt; font-weight: bold;')
        layout.addWidget(title_label)

        self.status_text = QTextEdit()
        self.status_text.setReadOnly(True)
        font = QFont('Consolas', 9)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self.status_text.setFont(font)
        self.status_text.setFixedHeight(110)
        layout.addWidget(self.status_text)

        self.close_btn = QPushButton('Close')
        self.close_btn.setEnabled(False)
        self.close_btn.clicked.connect(self.accept)
        layout.addWidget(self.close_btn)

        self.setLayout(layout)

        self.log_signal.connect(self.status_text.append)
        self.done_signal.connect(self._on_done)

    def _on_done(self):
        """Called when the purge is complete."""
        self.status_text.append('\nDone. Start the proxy again to reinstall.')
        self.close_btn.setEnabled(True)

    def _start_purge(self):
        """Run the purge in a background thread; stopping the proxy can block."""

        @run_in_thread
        def perform():
            for msg in self.proxy_master.unregister(purge_caches=True):
                self.log_signal.emit(msg)
                time.sleep(0.2)
            self.done_signal.emit()

        perform()
