"""Centralized logging configuration."""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_FLAG = "_netmeter_handler"


def configure_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """
    Send log records to stderr through rich, and optionally to a rotating
    file.  Safe to call more than once; earlier netmeter handlers are
    replaced.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    setattr(console_handler, _HANDLER_FLAG, True)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        setattr(file_handler, _HANDLER_FLAG, True)
        root_logger.addHandler(file_handler)
