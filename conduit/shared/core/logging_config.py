"""Logging setup shared by Conduit entry points.

File handler logs everything at the configured level; the console only shows
warnings and errors unless configured otherwise.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .configuration import LoggingConfig

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# Third-party loggers that are too chatty at DEBUG
NOISY_LOGGERS = ("asyncio", "markdown_it")


def configure_logging(config: Optional[LoggingConfig] = None, console: Optional[Console] = None) -> logging.Logger:
    """Configure the root logger and return it.

    Existing root handlers are removed so repeated calls do not duplicate
    output.
    """
    config = config or LoggingConfig()
    file_level = LOG_LEVEL_MAP.get(config.level, logging.DEBUG)
    console_level = LOG_LEVEL_MAP.get(config.console_level, logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(min(file_level, console_level))
    root_logger.handlers.clear()

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)

    if config.rich_console:
        console_handler: logging.Handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    console_handler.setLevel(console_level)
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: file={config.log_file or 'disabled'}, console={config.console_level}+"
    )
    return root_logger
