"""Logging for the cfgtool command line.

Warnings and errors reach the terminal through rich on stderr, leaving stdout
to command output such as the status table. ``--debug`` lowers the console
threshold to DEBUG, where every git command run against the store is shown.
A configured ``log_file`` records the same DEBUG stream regardless of
``--debug``, which is the place to look after a failed sync.
"""

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _console_handler(debug: bool) -> RichHandler:
    # Paths and file names contain brackets, so markup stays off
    handler = RichHandler(
        console=console,
        show_path=debug,
        enable_link_path=debug,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=debug,
    )
    handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    return handler


def _file_handler(log_file: str, log_format: str) -> logging.FileHandler:
    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(log_format))
    return handler


def _log_uncaught(
    exc_type: Type[BaseException],
    exc_value: BaseException,
    exc_traceback: Optional[TracebackType],
) -> None:
    """Send crashes to the log, so they also land in the log file."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    log_format: str = FILE_FORMAT,
) -> None:
    """Configure the root logger for one cfgtool invocation.

    Calling it again replaces the handlers installed by an earlier call.

    Args:
        debug: Show DEBUG records, including git commands, on the console.
        log_file: Also write DEBUG records to this file; ``~`` is expanded
            and missing parent directories are created.
        log_format: Record format for the log file.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug or log_file else logging.WARNING)
    root_logger.handlers.clear()
    root_logger.addHandler(_console_handler(debug))
    if log_file:
        root_logger.addHandler(_file_handler(log_file, log_format))
        logger.debug("Writing log to %s", log_file)

    sys.excepthook = _log_uncaught
