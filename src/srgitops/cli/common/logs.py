"""Logging setup for the CLI.

Diagnostics go through the standard `logging` module and are rendered on
stderr by Rich, keeping stdout for the plan and command results.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

error_console = Console(stderr=True)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the root logger from the --verbose / --quiet flags."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
        force=True,
    )
    # urllib3 logs every connection at DEBUG.
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
