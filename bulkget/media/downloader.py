"""
Handles the low-level downloading of a single URL over HTTP into a local file.
"""

import asyncio
import logging
import os

import aiofiles
import aiohttp
from rich.markup import escape
from yarl import URL

from bulkget.exceptions import InvalidURLError
from bulkget.models.config import DownloadConfig
from bulkget.models.stats import DownloadStats
from bulkget.utils.path import resolve_filename

log = logging.getLogger(__name__)


def create_session(connections: int = 1) -> aiohttp.ClientSession:
    """
    Creates the aiohttp ClientSession shared by every download of a run.

    Args:
        connections: Maximum concurrent downloads (should match config.connections).
    """
    connector = aiohttp.TCPConnector(
        limit=connections,
        ttl_dns_cache=600,  # 10 minutes
        keepalive_timeout=30,
    )
    timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
    log.debug(f"Created download session with limit={connections}")
    return aiohttp.ClientSession(connector=connector, timeout=timeout)


def build_request_url(url: str) -> URL:
    """Validates that a URL can be requested over HTTP(S)."""
    try:
        parsed = URL(url)
    except (TypeError, ValueError) as e:
        raise InvalidURLError(str(e)) from e
    if parsed.scheme not in ("http", "https"):
        raise InvalidURLError(f"unsupported protocol scheme '{parsed.scheme}'")
    if not parsed.host:
        raise InvalidURLError("no host in request URL")
    return parsed


class Downloader:
    """Downloads one URL at a time into the current working directory."""

    CHUNK_SIZE = 131072  # 128 KB
    # Guards against names that keep disappearing between the check and the create
    MAX_NAME_ATTEMPTS = 16

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: DownloadConfig,
        stats: DownloadStats | None = None,
    ):
        self.session = session
        self.config = config
        self.stats = stats

    async def download(self, url: str) -> bool:
        """
        Fetches a URL and writes the response body to a freshly created file.

        Every failure is logged and only aborts this download.
        Returns True when the whole body was written.
        """
        ok = await self._download(url)
        if self.stats and not ok:
            self.stats.record_failure()
        return ok

    async def _download(self, url: str) -> bool:
        try:
            build_request_url(url)
        except InvalidURLError as e:
            log.error(
                f"[red]error creating request for {escape(url)}: {escape(str(e))}[/red]"
            )
            return False

        headers = {}
        if self.config.user_agent:
            headers["User-Agent"] = self.config.user_agent

        try:
            async with self.session.get(url, headers=headers) as response:
                return await self._save_response(url, response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.error(f"[red]error downloading {escape(url)}: {escape(str(e))}[/red]")
            return False

    async def _open_destination(self, url: str):
        """
        Resolves a file name for the URL and creates the file.

        Without overwrite the file is created exclusively, so a name claimed by
        a concurrent download in the meantime is resolved again.
        Returns the open file and its name, or None when creation failed.
        """
        avoid_overwrite = not self.config.overwrite
        mode = "xb" if avoid_overwrite else "wb"
        filename = ""
        for _ in range(self.MAX_NAME_ATTEMPTS):
            filename = await asyncio.to_thread(resolve_filename, url, avoid_overwrite)
            try:
                f = await aiofiles.open(filename, mode)
            except FileExistsError:
                log.debug(f"'{escape(filename)}' was taken concurrently, retrying")
                continue
            except OSError as e:
                log.error(
                    f"[red]error creating file {escape(filename)}: "
                    f"{escape(str(e))}[/red]"
                )
                return None
            return f, filename

        log.error(
            f"[red]error creating file {escape(filename)}: "
            f"no free name after {self.MAX_NAME_ATTEMPTS} attempts[/red]"
        )
        return None

    async def _save_response(self, url: str, response: aiohttp.ClientResponse) -> bool:
        if response.status >= 400:
            log.warning(
                f"[yellow]{escape(url)} answered {response.status} "
                f"{escape(response.reason or '')}, saving body anyway[/yellow]"
            )

        opened = await self._open_destination(url)
        if opened is None:
            return False
        f, filename = opened

        try:
            try:
                path = await asyncio.to_thread(os.path.abspath, filename)
            except OSError as e:
                log.error(
                    f"[red]error while getting absolute path of {escape(filename)}: "
                    f"{escape(str(e))}[/red]"
                )
                path = filename

            bytes_written = 0
            try:
                async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                    await f.write(chunk)
                    bytes_written += len(chunk)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                log.error(
                    f"[red]error during download {escape(url)} to {escape(path)}: "
                    f"{escape(str(e))}[/red]"
                )
                return False
        finally:
            await f.close()

        if self.stats:
            self.stats.record_success(bytes_written)
        log.info(f"{escape(url)}\n -> {escape(path)}")
        return True
