"""
Logging utilities

Library modules only ever call get_logger(); configure_logging() is reserved
for the command-line entry points (simulatepulsar, profilesummary)
"""

from __future__ import annotations
import logging
from logging import StreamHandler, Logger
from logging.handlers import RotatingFileHandler

_FMT = "[%(asctime)s] %(levelname)8s %(message)s (%(name)s:%(lineno)s)"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# -v counts -> console level
VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG")


def verbosity_to_level(verbose: int) -> str:
    """Map a -v/-vv count onto a console level name (capped at DEBUG)"""
    return VERBOSITY_LEVELS[max(0, min(verbose, len(VERBOSITY_LEVELS) - 1))]


def configure_logging(
        *,
        console_level: str = "WARNING",
        file_path: str | None = None,
        file_level: str = "INFO",
        file_max_bytes: int = 5_000_000,
        file_backup_count: int = 2,
        force: bool = False,
) -> None:
    """
    Attach a console handler (and optionally a rotating .log file) to the root logger

    :param console_level: level name for the console handler
    :type console_level: str
    :param file_path: path of the .log file, None for console only
    :type file_path: str | None
    :param file_level: level name for the file handler
    :type file_level: str
    :param file_max_bytes: size at which the .log file is rotated
    :type file_max_bytes: int
    :param file_backup_count: number of rotated .log files kept
    :type file_backup_count: int
    :param force: remove handlers already attached to the root logger
    :type force: bool
    """
    root = logging.getLogger()

    if force:
        for h in root.handlers[:]:
            root.removeHandler(h)

    # handler levels do the filtering
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter(_FMT, _DATEFMT)

    ch = StreamHandler()
    ch.setLevel(getattr(logging, console_level.upper(), logging.WARNING))
    ch.setFormatter(formatter)
    root.addHandler(ch)

    if file_path:
        fh = RotatingFileHandler(
            file_path,
            mode="w",
            maxBytes=file_max_bytes,
            backupCount=file_backup_count
        )
        fh.setLevel(getattr(logging, file_level.upper(), logging.INFO))
        fh.setFormatter(formatter)
        root.addHandler(fh)


def get_logger(name: str) -> Logger:
    """
    Return a module logger carrying a NullHandler, so that importing pulsesim
    never configures global logging
    """
    logger = logging.getLogger(name)
    if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
        logger.addHandler(logging.NullHandler())
    return logger
