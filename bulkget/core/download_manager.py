"""
The main orchestrator: reads URL lines, paces and dispatches downloads under a
concurrency cap, and waits for every download to finish.
"""

import asyncio
import logging

import aiohttp
from rich.markup import escape

from bulkget.exceptions import SourceReadError
from bulkget.media import Downloader
from bulkget.models.config import DownloadConfig
from bulkget.models.stats import DownloadStats

from .pacing import FixedWait, RandomWait, select_wait_strategy
from .sources import UrlSourceAggregator

log = logging.getLogger(__name__)


class DownloadManager:
    """Orchestrates the entire download process."""

    def __init__(
        self,
        config: DownloadConfig,
        session: aiohttp.ClientSession,
        wait_strategy: FixedWait | RandomWait | None = None,
    ):
        self.config = config
        self.stats = DownloadStats()
        self.downloader = Downloader(session, config, self.stats)
        self.wait_strategy = wait_strategy or select_wait_strategy(
            config.wait, config.random_wait
        )
        self.sources = UrlSourceAggregator(config.input_files, config.urls)
        self.semaphore = asyncio.Semaphore(config.connections)
        self._pending: set[asyncio.Task] = set()

    async def execute_downloads(self) -> DownloadStats:
        """
        Reads every URL source to the end, dispatching one download per
        non-blank line, then waits for all of them.

        Lines are read and dispatched strictly in input order. The pacing delay
        runs before every dispatch except the first. Acquiring a connection slot
        happens here, so reading stops while all slots are busy.
        """
        try:
            async for line in self.sources:
                url = line.strip()
                if not url:
                    continue
                if self.stats.urls_dispatched:
                    await self.wait_strategy.wait()
                await self._dispatch(url)
        except SourceReadError as e:
            log.error(f"[red]{escape(str(e))}[/red]")

        if self._pending:
            log.debug(f"Waiting for {len(self._pending)} download(s) to finish")
            await asyncio.gather(*list(self._pending))
        return self.stats

    async def _dispatch(self, url: str) -> None:
        if self.semaphore.locked():
            log.debug(
                f"All {self.config.connections} connection(s) busy, "
                f"holding [dim]{escape(url)}[/dim]"
            )
        await self.semaphore.acquire()
        self.stats.urls_dispatched += 1
        task = asyncio.create_task(self._process_url(url))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _process_url(self, url: str) -> None:
        """Runs one download and gives its connection slot back, whatever happens."""
        try:
            await self.downloader.download(url)
        except Exception as e:
            self.stats.record_failure()
            log.error(f"[red]✗ Error processing {escape(url)}: {escape(str(e))}[/red]")
        finally:
            self.semaphore.release()
