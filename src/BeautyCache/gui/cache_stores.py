"""Cache stores window - lists named stores and their entries."""

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtWidgets import (
    QDialog, QHBoxLayout, QHeaderView, QLabel, QPushButton, QTableWidget,
    QTableWidgetItem, QVBoxLayout,
)

from ..cache import CacheStorage, CachedResponse
from ..utils import APP_NAME


def format_size(size_bytes: int) -> str:
    for unit in ('B', 'KB', 'MB'):
        if size_bytes < 1024:
            return f'{size_bytes:.0f} {unit}' if unit == 'B' else f'{size_bytes:.1f} {unit}'
        size_bytes /= 1024
    return f'{size_bytes:.1f} GB'


class CacheStoresWindow(QDialog):
    """Shows every cache store; the current one is marked."""

    def __init__(self, storage: CacheStorage, current_name: str):
        super().__init__()
        self.storage = storage
        self.current_name = current_name
        self.setWindowTitle(f'{APP_NAME} - Cache Stores')
        self.resize(760, 460)
        self.setWindowFlags(
            Qt.WindowType.Window |
            Qt.WindowType.WindowMinimizeButtonHint |
            Qt.WindowType.WindowMaximizeButtonHint |
            Qt.WindowType.WindowCloseButtonHint
        )
        self._setup_ui()
        self._refresh()

        self._refresh_timer = QTimer()
        self._refresh_timer.timeout.connect(self._refresh)
        self._refresh_timer.start(3000)

    def _setup_ui(self):
        """Setup the UI."""
        layout = QVBoxLayout()
        layout.setContentsMargins(10, 10, 10, 10)

        self.summary_label = QLabel()
        layout.addWidget(self.summary_label)

        self.stores_table = QTableWidget()
        self.stores_table.setColumnCount(4)
        self.stores_table.setHorizontalHeaderLabels(['Store', 'Entries', 'Size', 'Status'])
        header = self.stores_table.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        for column in (1, 2, 3):
            header.setSectionResizeMode(column, QHeaderView.ResizeMode.ResizeToContents)
        self.stores_table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        self.stores_table.setSelectionMode(QTableWidget.SelectionMode.SingleSelection)
        self.stores_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.stores_table.itemSelectionChanged.connect(self._show_entries)
        layout.addWidget(self.stores_table)

        self.entries_table = QTableWidget()
        self.entries_table.setColumnCount(3)
        self.entries_table.setHorizontalHeaderLabels(['URL', 'Status', 'Content-Type'])
        header = self.entries_table.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        header.setSectionResizeMode(1, QHeaderView.ResizeMode.ResizeToContents)
        header.setSectionResizeMode(2, QHeaderView.ResizeMode.ResizeToContents)
        self.entries_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        layout.addWidget(self.entries_table)

        buttons = QHBoxLayout()
        buttons.addStretch()
        refresh_btn = QPushButton('Refresh')
        refresh_btn.clicked.connect(self._refresh)
        buttons.addWidget(refresh_btn)
        layout.addLayout(buttons)

        self.setLayout(layout)

    def _refresh(self):
        """Reload store statistics."""
        stats = self.storage.stats()
        selected = self._selected_store()

        self.stores_table.setRowCount(len(stats))
        for row, store in enumerate(stats):
            status = 'Current' if store['name'] == self.current_name else 'Other'
            values = [store['name'], str(store['entries']), format_size(store['total_size']), status]
            for column, value in enumerate(values):
                self.stores_table.setItem(row, column, QTableWidgetItem(value))
            if store['name'] == selected:
                self.stores_table.selectRow(row)

        total = sum(s['total_size'] for s in stats)
        self.summary_label.setText(f'{len(stats)} store(s), {format_size(total)} on disk')

    def _selected_store(self) -> str | None:
        rows = self.stores_table.selectionModel().selectedRows() if self.stores_table.selectionModel() else []
        if not rows:
            return None
        item = self.stores_table.item(rows[0].row(), 0)
        return item.text() if item else None

    def _show_entries(self):
        """List cached URLs of the selected store."""
        name = self._selected_store()
        self.entries_table.setRowCount(0)
        if name is None or not self.storage.has(name):
            return

        entries = self.storage.open(name).entries()
        self.entries_table.setRowCount(len(entries))
        for row, entry in enumerate(entries):
            content_type = CachedResponse(entry.get('url', ''), 0, entry.get('headers')).content_type
            values = [entry.get('url', ''), str(entry.get('status', '')), content_type]
            for column, value in enumerate(values):
                self.entries_table.setItem(row, column, QTableWidgetItem(value))

    def closeEvent(self, event):
        """Handle window close event."""
        self._refresh_timer.stop()
        super().closeEvent(event)
