"""
Core application engine for orchestrating the download process.

This package contains the primary logic. The `DownloadManager` reads URL
lines from the `UrlSourceAggregator`, paces dispatches with a wait strategy
and hands each URL to the `Downloader` under a concurrency cap.
"""
