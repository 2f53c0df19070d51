"""
Logging utilities for the wt toolkit.

Provides unified structured logging:
- pretty console output via Rich
- structured (JSON) file output to `replay.log` when running `wt replay`
"""

import logging
import json
from pathlib import Path

from rich.logging import RichHandler

# commands whose runs are worth keeping a machine-readable trail of
FILE_LOGGED_COMMANDS = ("replay",)


class JSONFormatter(logging.Formatter):
    """
    Formatter that serializes log records to JSON.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level":     record.levelname,
            "logger":    record.name,
            "message":   record.getMessage(),
        }
        return json.dumps(log_record)


def get_logger(name: str, level: int | str = logging.INFO) -> logging.Logger:
    """
    Return a configured logger for the given name.

    Attaches a RichHandler for console output. File output is added per
    command by `attach_file_log`, once the command line has been parsed.

    Parameters
    ----------
    name
        Logger name (typically __name__).
    level
        Log level (int or string), defaults to INFO.

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = RichHandler(rich_tracebacks=True)
        console_handler.setLevel(level)
        logger.addHandler(console_handler)

    return logger


def attach_file_log(command: str, level: int | str = logging.INFO) -> Path | None:
    """
    Mirror every `wt.*` record as JSON to {cwd}/{command}.log.

    Only commands in FILE_LOGGED_COMMANDS get a file; the handler sits on the
    `wt` package logger so module loggers reach it by propagation. Calling
    this twice for the same file is a no-op.

    Returns
    -------
    Path or None
        The log file, or None when the command is not file-logged.
    """
    if command not in FILE_LOGGED_COMMANDS:
        return None

    log_path = Path.cwd() / f"{command}.log"
    package_logger = logging.getLogger("wt")
    for handler in package_logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
            return log_path

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(JSONFormatter())
    package_logger.addHandler(file_handler)
    return log_path


def set_level(level: int | str) -> None:
    """
    Change the level of every `wt.*` logger and its handlers, e.g. for `--verbose`.
    """
    for name, logger in logging.Logger.manager.loggerDict.items():
        if not (name == "wt" or name.startswith("wt.")) or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
