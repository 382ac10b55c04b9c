"""Logging setup.

Human-readable messages go to stderr through rich, so stdout carries only
the report and the values printed by the helper commands.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger.

    Args:
        verbose: Enable debug output
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=console,
                show_time=False,
                show_path=verbose,
                markup=False,
                rich_tracebacks=verbose,
            )
        ],
        force=True,
    )
