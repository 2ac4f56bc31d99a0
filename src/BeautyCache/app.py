"""Application entrypoint."""

import sys

from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QApplication

from .config import ConfigManager
from .proxy import ProxyMaster
from .tray import SystemTray
from .utils import log_buffer


def main():
    """Main application entry point."""
    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    config_manager = ConfigManager()
    log_buffer.log('Info', f'Caching {config_manager.app_origin} as {config_manager.cache_name}')

    # Registers the cache controller once the proxy is up
    proxy_master = ProxyMaster(config_manager)
    proxy_master.start()

    tray = SystemTray(app, config_manager, proxy_master)

    status_timer = QTimer()
    status_timer.timeout.connect(tray.update_status)
    status_timer.start(1000)

    if config_manager.open_logs_on_launch:
        tray.show_logs()

    exit_code = app.exec()
    proxy_master.stop()
    sys.exit(exit_code)


if __name__ == '__main__':
    main()
