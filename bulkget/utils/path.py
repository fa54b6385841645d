"""
Utilities for handling file paths and deriving file names from URLs.
"""

import itertools
import os
from datetime import datetime
from pathlib import Path

from pathvalidate import sanitize_filename
from yarl import URL

from bulkget.exceptions import DestinationError

_generated_name_counter = itertools.count(1)


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def generate_filename() -> str:
    """
    Fabricates a timestamp-based name for URLs without a usable path segment.
    The trailing counter keeps names distinct within the same second.
    """
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return f"download-{stamp}-{next(_generated_name_counter)}"


def base_name_from_url(url: str) -> str:
    """
    Returns the last path segment of a URL, without query string or fragment,
    sanitized for the local file system. Falls back to a generated name.
    """
    try:
        name = URL(url).name
    except (TypeError, ValueError):
        name = url.split("?", 1)[0].split("#", 1)[0].rstrip("/").rsplit("/", 1)[-1]
    name = sanitize_filename(name, platform="auto")
    if name in ("", ".", ".."):
        return generate_filename()
    return name


def resolve_filename(
    url: str, avoid_overwrite: bool, directory: Path = Path(".")
) -> str:
    """
    Derives the destination file name for a URL.

    When avoid_overwrite is set and the base name is already taken in
    directory, the first free name of the form 'stem-N.ext' is returned.
    Nothing is created; the name is not reserved.
    """
    base_name = base_name_from_url(url)
    if not avoid_overwrite or not (directory / base_name).exists():
        return base_name

    stem, ext = os.path.splitext(base_name)
    for counter in itertools.count(1):
        candidate = f"{stem}-{counter}{ext}"
        if not (directory / candidate).exists():
            return candidate


def enter_directory(directory: str) -> None:
    """
    Creates the destination directory (with all parents) if needed and makes
    it the working directory of the process.
    """
    if directory == ".":
        return
    path = Path(directory)
    try:
        create_dir(path)
    except OSError as e:
        raise DestinationError(
            f"error creating new destination directory {directory}: {e}"
        ) from e
    try:
        os.chdir(path)
    except OSError as e:
        raise DestinationError(
            f"error while changing working directory to {directory}: {e}"
        ) from e
