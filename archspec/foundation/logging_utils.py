from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logger(
    name: str = "archspec",
    *,
    level: str | int = logging.INFO,
    log_file: str | None = None,
) -> logging.Logger:
    """Configure the CLI logger (stderr + optional UTF-8 file).

    The `archkit` logger gets the same handlers so engine messages land in
    the same stream/file.
    """

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        directory = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    kit_logger = logging.getLogger("archkit")
    kit_logger.setLevel(logging.DEBUG)
    kit_logger.handlers.clear()
    for handler in logger.handlers:
        kit_logger.addHandler(handler)
    kit_logger.propagate = False

    logger.debug("Logging initialized (level=%s, file=%s)", level, log_file or "<none>")
    return logger
