import logging
import os
import sys
from typing import Optional, TextIO

from tqdm import tqdm

LOGGER_NAME = "i18n_sheets"

# The terminal gets short lines; the log file keeps timestamps and the emitting module.
CONSOLE_FORMAT = '%(levelname)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class TqdmLoggingHandler(logging.StreamHandler):
    """
    Console handler for use while a ``tqdm`` bar is on screen.

    Records go through ``tqdm.write``, which clears the bar, prints the line
    and redraws the bar underneath.
    """

    def __init__(self, stream: Optional[TextIO] = None, level=logging.NOTSET):
        super().__init__(stream if stream is not None else sys.stderr)
        self.setLevel(level)

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=self.stream)
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logger(log_level_str: str, log_file_path: str, log_to_console: bool) -> logging.Logger:
    """
    Configure the ``i18n_sheets`` logger.

    Module loggers such as ``i18n_sheets.sync_manager`` propagate into it.
    Handlers from an earlier call are closed and replaced, and records stop
    at this logger.

    Args:
        log_level_str: Level name, e.g. 'INFO' or 'debug'. Unknown names mean INFO.
        log_file_path: UTF-8 log file, its directory created on demand. Empty disables it.
        log_to_console: Also print records on stderr through tqdm.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level_str.upper(), logging.INFO))
    _reset_handlers(logger)
    logger.propagate = False

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    if log_to_console:
        console_handler = TqdmLoggingHandler()
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    return logger


def setup_console_logger(log_level_str: str = "INFO") -> logging.Logger:
    """Console-only logging, used until a config file has been read."""
    return setup_logger(log_level_str, "", True)
