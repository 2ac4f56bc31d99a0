"""Logs window."""

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QDialog, QHBoxLayout, QPushButton, QTextEdit, QVBoxLayout

from ..utils import APP_NAME, log_buffer


class LogsWindow(QDialog):
    """Logs viewer window."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle(f'{APP_NAME} - Logs')
        self.resize(700, 420)
        self.setWindowFlags(
            Qt.WindowType.Window |
            Qt.WindowType.WindowMinimizeButtonHint |
            Qt.WindowType.WindowMaximizeButtonHint |
            Qt.WindowType.WindowCloseButtonHint
        )

        self._last_text = None
        self._setup_ui()
        self._start_updates()

    def _setup_ui(self):
        """Setup the UI."""
        layout = QVBoxLayout()
        layout.setContentsMargins(10, 10, 10, 10)

        self.text_edit = QTextEdit()
        self.text_edit.setReadOnly(True)
        font = QFont('Consolas', 10)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self.text_edit.setFont(font)
        layout.addWidget(self.text_edit)

        buttons = QHBoxLayout()
        buttons.addStretch()
        clear_btn = QPushButton('Clear')
        clear_btn.clicked.connect(self._clear_logs)
        buttons.addWidget(clear_btn)
        layout.addLayout(buttons)

        self.setLayout(layout)

    def _start_updates(self):
        """Start periodic updates."""
        self.timer = QTimer()
        self.timer.timeout.connect(self._update_logs)
        self.timer.start(250)
        self._update_logs()

    def _update_logs(self):
        """Update the logs display."""
        # The buffer is bounded, so compare text rather than entry counts
        text = log_buffer.get_text()
        if text != self._last_text:
            self.text_edit.setPlainText(text)
            scrollbar = self.text_edit.verticalScrollBar()
            scrollbar.setValue(scrollbar.maximum())
            self._last_text = text

    def _clear_logs(self):
        log_buffer.clear()
        self._update_logs()

    def closeEvent(self, event):
        """Handle window close event."""
        self.timer.stop()
        super().closeEvent(event)
