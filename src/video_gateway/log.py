"""Logging setup shared by the server and the CLI."""

import logging

from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """Route all log records through a single rich handler."""
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
