"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import random
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.text import Text

from bulkget import __version__
from bulkget.core.download_manager import DownloadManager
from bulkget.exceptions import BulkgetError
from bulkget.media import create_session
from bulkget.models.config import USER_AGENTS, DownloadConfig
from bulkget.models.stats import DownloadStats
from bulkget.storage.config_manager import ConfigManager
from bulkget.utils.path import enter_directory

from .formatters import format_error_with_suggestions, print_summary_panel

# Every diagnostic goes to stderr; stdout is reserved for -list-agents
console = Console(stderr=True)


class PlainMarkupFormatter(logging.Formatter):
    """Renders the rich markup of a log message as plain, unwrapped text."""

    def format(self, record: logging.LogRecord) -> str:
        return Text.from_markup(super().format(record)).plain


class ConsoleStreamHandler(logging.StreamHandler):
    """Writes plain records to whatever file the console currently targets."""

    def __init__(self, console: Console):
        super().__init__(console.file)
        self.console = console
        self.setFormatter(PlainMarkupFormatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = self.console.file
        super().emit(record)


def build_log_handler(console: Console) -> logging.Handler:
    """
    A RichHandler for interactive terminals. When stderr is redirected, every
    message is written as-is on its own line so that long URLs are never
    wrapped.
    """
    if console.is_terminal:
        return RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    return ConsoleStreamHandler(console)


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[build_log_handler(console)],
)
log = logging.getLogger("bulkget")

# Conventional exit status for a run stopped with Ctrl-C
EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="bulkget",
    help=(
        "Download from a list of URLs, either passed directly from the command"
        " line or from a file. Can optionally make many downloads concurrently."
    ),
    rich_markup_mode=None,
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def pick_user_agent(config: DownloadConfig, random_agent: bool) -> str:
    """An explicit User-Agent always wins over a randomly chosen one."""
    if config.user_agent:
        return config.user_agent
    if random_agent:
        user_agent = random.choice(USER_AGENTS)
        log.info(f"used user-agent: {escape(user_agent)}")
        return user_agent
    return ""


async def run_downloads(config: DownloadConfig) -> DownloadStats:
    """Runs a whole download session with its own HTTP session."""
    async with create_session(config.connections) as session:
        manager = DownloadManager(config, session)
        return await manager.execute_downloads()


@app.command()
def download(
    ctx: typer.Context,
    urls: list[str] | None = typer.Argument(  # noqa: B008
        None, help="URLs to download, appended after the contents of all -i files."
    ),
    connections: int | None = typer.Option(
        None,
        "-c",
        metavar="CONNECTIONS",
        help=(
            "Number of connections, or files downloaded concurrently (default 1);"
            " numbers <= 0 will be interpreted as 1."
        ),
    ),
    overwrite: bool = typer.Option(
        False,
        "-over",
        "--over",
        help=(
            "Overwrite existing files with the same name; otherwise, will try to"
            " make a unique name."
        ),
    ),
    dest_dir: str | None = typer.Option(
        None,
        "-dest",
        "--dest",
        metavar="DIRECTORY",
        help="Destination directory for downloaded files (default '.').",
    ),
    random_agent: bool = typer.Option(
        False,
        "-random-agent",
        "--random-agent",
        help="Randomize the reported User-Agent string; can help with bot blocking.",
    ),
    list_agents: bool = typer.Option(
        False,
        "-list-agents",
        "--list-agents",
        help="List available User-Agent strings and exit.",
    ),
    custom_agent: str | None = typer.Option(
        None,
        "-custom-agent",
        "--custom-agent",
        metavar="AGENT",
        help="Use this User-Agent string; takes precedence over -random-agent.",
    ),
    wait: int | None = typer.Option(
        None,
        "-wait",
        "--wait",
        metavar="SECONDS",
        help="Seconds to wait between two downloads are started (default 0).",
    ),
    random_wait: bool = typer.Option(
        False,
        "-random-wait",
        "--random-wait",
        help="Wait a random number of seconds between 0 and -wait instead.",
    ),
    input_files: list[str] | None = typer.Option(  # noqa: B008
        None,
        "-i",
        metavar="FILE",
        help="Add an input file containing one URL per line; can be used multiple times.",
    ),
    config_file: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        help="INI file with default values for the options above.",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for a summary, -vv for debug logs).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
):
    """Download every URL given on the command line or listed in input files."""
    if list_agents:
        typer.echo("\n".join(USER_AGENTS))
        raise typer.Exit()

    if version:
        console.print(f"[bold]bulkget[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("bulkget").setLevel(log_level)

    # Invoked without anything to download is a valid way to ask for help
    if not input_files and not urls:
        typer.echo(ctx.get_help(), err=True)
        raise typer.Exit()

    # Input files are read after -dest has changed the working directory
    if input_files:
        input_files = [os.path.abspath(path) for path in input_files]

    # Flags can only switch boolean options on; unset options fall back to
    # the configuration file and then to the model defaults
    cli_options = {
        key: value
        for key, value in {
            "connections": connections,
            "overwrite": overwrite or None,
            "dest_dir": dest_dir,
            "user_agent": custom_agent,
            "wait": wait,
            "random_wait": random_wait or None,
            "input_files": input_files,
            "urls": urls,
        }.items()
        if value is not None
    }

    try:
        config = ConfigManager(config_file).load_config(cli_options)
        user_agent = pick_user_agent(config, random_agent)
        if user_agent != config.user_agent:
            config = config.model_copy(update={"user_agent": user_agent})
        enter_directory(config.dest_dir)
    except BulkgetError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    log.debug(f"Starting download session: {config!r}")
    try:
        stats = asyncio.run(run_downloads(config))
    except KeyboardInterrupt:
        log.warning("interrupted, partially written files may remain")
        raise typer.Exit(code=EXIT_INTERRUPTED) from None

    if verbose >= 1:
        print_summary_panel(stats, console)
