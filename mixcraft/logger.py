import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str, level=None) -> logging.Logger:
    logger: logging.Logger = logging.getLogger(name)
    if level is None:
        level = os.environ.get("MIXCRAFT_LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(level), int):
            level = logging.INFO

    logging.basicConfig(format=LOG_FORMAT, level=level)
    return logger
