"""Logging setup for the server and CLI."""

import logging
from typing import Optional

from . import LoggingConfig

_HANDLER_MARK = "_pysite_handler"


def configure_logging(config: Optional[LoggingConfig] = None, debug: bool = False) -> logging.Logger:
    """Install console (and optional file) handlers on the ``pysite`` logger.

    Calling it again replaces the handlers installed by a previous call.
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if debug else getattr(logging, config.level.upper(), logging.INFO)

    logger = logging.getLogger("pysite")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)
    handlers = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        setattr(handler, _HANDLER_MARK, True)
        logger.addHandler(handler)

    return logger
