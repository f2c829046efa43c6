"""
Logging configuration for the HomeFix API.

``setup_logging`` attaches a console handler and an optional file
handler to the root logger, once per process.  The HTTP client used for
the payment gateway logs every request line at INFO, including intent
ids in the URL; those loggers are held at WARNING unless the service
itself runs at DEBUG.
"""

import logging
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

GATEWAY_CLIENT_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``, ``"INFO"``).  Case
        insensitive; unknown names fall back to ``INFO``.
    logfile : Optional[str]
        Path to a file to log messages to.  If omitted, no file
        handler is added.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    client_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in GATEWAY_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)

    logger = logging.getLogger()
    if logger.handlers:
        # Already configured (tests, repeated create_app calls, uvicorn).
        return
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
