"""
Media Transfer Layer.

This package is responsible for moving bytes from an HTTP response into a
local file, and for the HTTP session shared by all downloads.
"""

from .downloader import Downloader, create_session

__all__ = ["Downloader", "create_session"]
