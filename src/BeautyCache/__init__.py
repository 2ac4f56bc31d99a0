"""Beauty Land Card offline cache proxy."""

from .utils import APP_NAME, APP_VERSION

__version__ = APP_VERSION

__all__ = ['APP_NAME', 'APP_VERSION', '__version__']
