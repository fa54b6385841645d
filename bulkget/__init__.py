"""
bulkget: a concurrent bulk file downloader for lists of URLs.
"""

__version__ = "0.3.0"
