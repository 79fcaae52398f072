"""
Logging setup for the Tello command client
Severity-leveled, timestamped lines on the console and optionally a file
"""

import logging
from datetime import datetime

LOGGER_NAME = "tellocmd"


class TimestampFormatter(logging.Formatter):
    """Prefix each line with a local timestamp like 2024-0518-1432-07.123"""

    def formatTime(self, record, datefmt=None):
        ts = datetime.fromtimestamp(record.created)
        return ts.strftime("%Y-%m%d-%H%M-%S") + ".%03d" % int(record.msecs)


FORMATTER = TimestampFormatter("%(asctime)s [%(levelname)s] %(message)s")


def get_logger(name=None):
    if not name:
        return logging.getLogger(LOGGER_NAME)
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(level="INFO", log_file=None):
    """Attach console (and file) handlers to the package logger"""
    logger = get_logger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler()
    handler.setFormatter(FORMATTER)
    logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(FORMATTER)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
