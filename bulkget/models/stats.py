"""
Dataclass for tracking download session statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class DownloadStats:
    """Tracks the outcome of every task dispatched during a run."""

    urls_dispatched: int = 0
    files_downloaded: int = 0
    files_failed: int = 0
    total_size_downloaded: int = 0
    start_time: float = field(default_factory=time.monotonic, repr=False)

    def record_success(self, size: int) -> None:
        self.files_downloaded += 1
        self.total_size_downloaded += size

    def record_failure(self) -> None:
        self.files_failed += 1

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time
