"""Logging configuration for Podpipe."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Chatty third-party loggers kept at WARNING unless verbose
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    verbose: bool = False,
    log_file: Path | None = None,
    level: str | None = None,
) -> None:
    """Configure the root logger.

    Console output goes through rich on stderr so it never mixes with command
    output such as a generated feed. Safe to call more than once; previous
    handlers are replaced.

    Args:
        verbose: Log at DEBUG level
        log_file: Also write plain-text logs to this file
        level: Explicit level name (ignored when verbose)
    """
    log_level = logging.DEBUG if verbose else getattr(logging, (level or "WARNING").upper())

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            show_path=verbose,
            rich_tracebacks=True,
            markup=False,
        )
    ]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # basicConfig only formats handlers that have no formatter yet
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
