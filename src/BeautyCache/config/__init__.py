"""Configuration package."""

from .manager import ConfigManager

__all__ = ['ConfigManager']
