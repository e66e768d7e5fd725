"""Run log setup."""

import datetime
import logging
import os
from pathlib import Path
from typing import Union

from rich.logging import RichHandler

from hyprsetup import LOGGER_NAME
from hyprsetup.ui import err_console

LOG_FILE_PREFIX = "setup-log-"


class _DebugOnly(logging.Filter):
    # Status lines already reach the terminal through hyprsetup.ui.
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno == logging.DEBUG


def log_file_name(now: datetime.datetime) -> str:
    return f"{LOG_FILE_PREFIX}{now.strftime('%b.%d.%Y_%I-%M-%S-%p')}.log"


def setup_logger(logs_dir: Union[str, Path], debug: bool = False) -> Path:
    """
    Configure the package logger with a timestamped log file.

    Every record goes to the file. When debug is enabled, DEBUG records are
    also rendered on stderr through a RichHandler.

    Args:
        logs_dir: Directory that holds one log file per run
        debug: Whether to trace debug records on stderr

    Returns:
        Path to the log file for this run
    """
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / log_file_name(datetime.datetime.now())

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(file_handler)
    try:
        os.chmod(str(log_file), 0o600)
    except OSError as e:
        logger.warning(f"Could not set log file permissions on {log_file}: {e}")

    if debug:
        rich_handler = RichHandler(
            console=err_console,
            level=logging.DEBUG,
            markup=False,
            rich_tracebacks=True,
            show_time=False,
            show_path=False,
        )
        rich_handler.addFilter(_DebugOnly())
        logger.addHandler(rich_handler)

    return log_file


def close_logger() -> None:
    """Detach and close every handler attached by `setup_logger`."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(logging.NullHandler())
