"""
Storage Layer.

This package handles reading persisted settings, namely the optional
INI defaults file.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
