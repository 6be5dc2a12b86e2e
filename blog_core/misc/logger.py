"""
Blog core library containing logging helper functionality
"""

import logging
from typing import Optional


def enforce_logger(logger: Optional[logging.Logger] = None, name: str = __name__) -> logging.Logger:
    """
    Enforce availability of a working logger

    :param logger: logger given by the caller, if any
    :param name: name of the default logger used when no logger was given
    :raises TypeError: if the given logger isn't a ``logging.Logger``
    """

    if logger is not None and isinstance(logger, logging.Logger):
        return logger
    elif logger is not None:
        raise TypeError(f"Expected 'logging.Logger', got {type(logger)}")
    log = logging.getLogger(name)
    log.warning(f"No logger specified for {name!r}; using defaults.")
    return log


class NoDebugFilter(logging.Filter):
    """
    Logging filter that filters out any DEBUG message for the specified logger or handler
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if super().filter(record):
            return record.levelno > logging.DEBUG
        return True
