import logging
from logging import Logger
import datetime
import os
from copy import copy

from typing import Optional, Literal, Dict

import time
import json

################################################

LOG_DIR = os.environ.get("LOG_DIR", os.path.join(os.getcwd(), "logs"))

# ANSI colours for the console formatter
COLOUR_MAPPING = {
    "RED": "\033[31m",
    "GREEN": "\033[32m",
    "YELLOW": "\033[33m",
    "CYAN": "\033[36m",
    "END": "\033[0m",
    "BOLD": "\033[1m",
    "UNDERLINE": "\033[4m",
}

LEVELS: Dict[str, int] = {
    "notset": logging.NOTSET,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


############################################# Logger #######################################


class CustomFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": COLOUR_MAPPING["CYAN"],
        "INFO": COLOUR_MAPPING["GREEN"],
        "WARNING": COLOUR_MAPPING["YELLOW"],
        "ERROR": COLOUR_MAPPING["RED"] + COLOUR_MAPPING["BOLD"],
        "CRITICAL": COLOUR_MAPPING["RED"]
        + COLOUR_MAPPING["BOLD"]
        + COLOUR_MAPPING["UNDERLINE"],
    }

    LINE_FORMAT = "%(asctime)s - %(process)d - %(name)s - %(levelname)s - %(lineno)d - %(message)s"

    def format(self, record):
        # Shallow copy: exc_info holds a traceback, which cannot be deep-copied
        formatted_record = copy(record)
        color = self.COLORS.get(formatted_record.levelname, "")

        # Qualify the logger name with the function that emitted the record
        if formatted_record.funcName != "<module>":
            formatted_record.name = f"{formatted_record.name}.{formatted_record.funcName}"

        formatter = logging.Formatter(self.LINE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        return f"{color}{formatter.format(formatted_record)}{COLOUR_MAPPING['END']}"


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "name": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        return time.strftime(datefmt or "%Y-%m-%d %H:%M:%S", ct)


def _file_handler(log_file: str, level_int: int) -> logging.FileHandler:
    now = datetime.datetime.now()
    log_dir = os.path.join(LOG_DIR, now.strftime("%Y_%m_%d"), log_file)
    os.makedirs(log_dir, exist_ok=True)
    handler = logging.FileHandler(os.path.join(log_dir, f"{now.strftime('%H_%M_%S')}.json"))
    handler.setLevel(level_int)
    handler.setFormatter(JSONFormatter())
    return handler


def create_logger(
    name: str,
    level: Literal[
        "notset",
        "debug",
        "info",
        "warning",
        "error",
        "critical",
    ] = "info",
    log_file: Optional[str] = None,
) -> Logger:
    """
    Create a logger with a coloured console handler and, optionally, a JSON
    lines file under LOG_DIR/<date>/<log_file>/.

    The file handler goes on the root logger so every module's records end
    up in the same file.

    Args:
        name: Name of the logger.
        level: Logging level name (or int). Defaults to "info".
        log_file: Sub-directory name for file logging. Defaults to None (console only).

    Returns:
        Configured logger object.
    """
    logger: Logger = logging.getLogger(name)
    level_int: int = LEVELS[level.lower()] if isinstance(level, str) else level
    logger.setLevel(level_int)

    # create_logger may be called again for the same name (e.g. app reloads)
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler: logging.StreamHandler = logging.StreamHandler()
    console_handler.setLevel(level_int)
    console_handler.setFormatter(CustomFormatter())
    logger.addHandler(console_handler)

    if log_file:
        logging.getLogger().addHandler(_file_handler(log_file, level_int))

    return logger
