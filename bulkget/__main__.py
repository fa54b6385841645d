"""
Entry point for `bulkget` and `python -m bulkget`.
"""

import logging
import sys

import typer

from bulkget.cli.app import app, console
from bulkget.cli.formatters import format_error_with_suggestions
from bulkget.exceptions import BulkgetError

log = logging.getLogger("bulkget")


def main() -> None:
    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except BulkgetError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
