"""
Aggregates every URL source of a run (input files first, then the URLs given
on the command line) into a single stream of lines.
"""

import io
import logging
from typing import AsyncIterator

import aiofiles
from rich.markup import escape

from bulkget.exceptions import SourceReadError

log = logging.getLogger(__name__)


class UrlSourceAggregator:
    """
    Async iterable over the raw lines of all URL sources, in registration order.

    Input files are opened lazily, one at a time, when the stream reaches them.
    A file that cannot be opened is reported and skipped. Bytes that are not
    valid UTF-8 are replaced, so only an I/O error while reading an opened file
    raises SourceReadError and ends the stream.
    The stream can only be consumed once.
    """

    def __init__(self, input_files: list[str], urls: list[str]):
        self.input_files = list(input_files)
        self.urls = list(urls)
        self._consumed = False

    def __aiter__(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("URL sources can only be read once.")
        self._consumed = True
        return self._iter_lines()

    async def _iter_lines(self) -> AsyncIterator[str]:
        for path in self.input_files:
            async for line in self._iter_file(path):
                yield line

        if self.urls:
            inline_source = io.StringIO("\n".join(self.urls) + "\n")
            for line in inline_source:
                yield line.rstrip("\r\n")

    async def _iter_file(self, path: str) -> AsyncIterator[str]:
        try:
            # Undecodable bytes are read as U+FFFD
            f = await aiofiles.open(path, "r", encoding="utf-8", errors="replace")
        except OSError as e:
            log.error(f"[red]error opening {escape(path)}: {escape(str(e))}[/red]")
            return

        log.debug(f"Reading URLs from file: [dim]{escape(path)}[/dim]")
        try:
            async for line in f:
                yield line.rstrip("\r\n")
        except OSError as e:
            raise SourceReadError(f"error reading {path}: {e}") from e
        finally:
            await f.close()
