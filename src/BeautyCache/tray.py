"""System tray implementation."""

from PyQt6.QtGui import QAction, QIcon
from PyQt6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from .gui import CacheStoresWindow, LogsWindow, PurgeCacheWindow
from .utils import APP_NAME, APP_VERSION


class SystemTray:
    """System tray icon with menu."""

    def __init__(self, app: QApplication, config_manager, proxy_master):
        self.app = app
        self.config_manager = config_manager
        self.proxy_master = proxy_master

        # Keep references to open windows to prevent garbage collection
        self.open_windows = []

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(QIcon(self.app.style().standardIcon(self.app.style().StandardPixmap.SP_DriveNetIcon)))

        self.menu = QMenu()
        self._create_menu()
        self.tray.setContextMenu(self.menu)
        self.update_status()

        self.tray.show()

    def _create_menu(self):
        """Create the tray menu."""
        title_action = QAction(f'{APP_NAME} v{APP_VERSION}', self.menu)
        title_action.setEnabled(False)
        self.menu.addAction(title_action)

        self.status_action = QAction('', self.menu)
        self.status_action.setEnabled(False)
        self.menu.addAction(self.status_action)

        self.menu.addSeparator()

        self.toggle_action = QAction('Stop Proxy', self.menu)
        self.toggle_action.triggered.connect(self._toggle_proxy)
        self.menu.addAction(self.toggle_action)

        self.menu.addSeparator()

        stores_action = QAction('Cache Stores', self.menu)
        stores_action.triggered.connect(self._show_cache_stores)
        self.menu.addAction(stores_action)

        logs_action = QAction('Logs', self.menu)
        logs_action.triggered.connect(self.show_logs)
        self.menu.addAction(logs_action)

        purge_action = QAction('Purge Caches && Unregister', self.menu)
        purge_action.triggered.connect(self._show_purge_cache)
        self.menu.addAction(purge_action)

        self.menu.addSeparator()

        settings_menu = QMenu('Settings', self.menu)
        self.open_logs_action = QAction('Open Logs on Launch', settings_menu)
        self.open_logs_action.setCheckable(True)
        self.open_logs_action.setChecked(self.config_manager.open_logs_on_launch)
        self.open_logs_action.triggered.connect(self._toggle_open_logs_on_launch)
        settings_menu.addAction(self.open_logs_action)
        self.menu.addMenu(settings_menu)

        self.menu.addSeparator()

        exit_action = QAction('Exit', self.menu)
        exit_action.triggered.connect(self._exit_app)
        self.menu.addAction(exit_action)

    def _toggle_proxy(self):
        """Start or stop the proxy."""
        if self.proxy_master.is_running:
            self.proxy_master.stop()
        else:
            self.proxy_master.start()
        self.update_status()

    def _toggle_open_logs_on_launch(self):
        new_state = not self.config_manager.open_logs_on_launch
        self.config_manager.open_logs_on_launch = new_state
        self.open_logs_action.setChecked(new_state)

    def _track(self, window):
        window.destroyed.connect(lambda: self._remove_window(window))
        self.open_windows.append(window)
        window.show()

    def show_logs(self):
        """Show Logs window."""
        self._track(LogsWindow())

    def _show_cache_stores(self):
        """Show Cache Stores window."""
        self._track(CacheStoresWindow(self.proxy_master.storage, self.config_manager.cache_name))

    def _show_purge_cache(self):
        """Show Purge Caches window."""
        self._track(PurgeCacheWindow(self.proxy_master))

    def _remove_window(self, window):
        """Remove window from tracking list."""
        if window in self.open_windows:
            self.open_windows.remove(window)

    def _exit_app(self):
        """Exit the application."""
        if self.proxy_master.is_running:
            self.proxy_master.stop()
        self.app.quit()

    def update_status(self):
        """Update the status (called periodically or on proxy state change)."""
        status = self.proxy_master.status
        self.tray.setToolTip(f'{APP_NAME} - {status}')
        self.status_action.setText(f'Status: {status}')
        self.toggle_action.setText('Stop Proxy' if self.proxy_master.is_running else 'Start Proxy')
