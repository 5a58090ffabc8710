"""Centralized logging utilities for todohub with package filtering."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


class PackageFilter(logging.Filter):
    """Filter to only allow logs from specified packages.

    Keeps third-party chatter (asyncio, markdown parsers) out of the console.
    """

    def __init__(self, packages: List[str]) -> None:
        super().__init__()
        self.packages = packages

    def filter(self, record: logging.LogRecord) -> bool:
        """Return True if the record comes from one of the packages."""
        return any(
            record.name == pkg or record.name.startswith(f"{pkg}.") for pkg in self.packages
        )


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure root logging for the todohub CLI.

    Installs a RichHandler for colored console output, filtered to todohub
    records, and optionally a plain file handler.

    Args:
        verbose: Enable debug level logging
        log_file: Optional path that also receives every record
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    console_handler = RichHandler(rich_tracebacks=True, show_path=verbose)
    console_handler.setLevel(log_level)
    console_handler.addFilter(PackageFilter(["todohub"]))
    handlers: List[logging.Handler] = [console_handler]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level, format="%(message)s", datefmt=DATE_FORMAT, handlers=handlers, force=True
    )
