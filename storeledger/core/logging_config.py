import logging
from typing import Union

LOGGER_NAME = "storeledger"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_configured = False


def configure_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package logger tree.

    Safe to call more than once; later calls only change the level.
    """
    global _configured

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level)

    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _configured = True

    return root

