"""
Logging configuration for the service.

``setup_logging`` attaches a console handler (and optionally a file
handler) to the root logger once per process, then aligns the levels of
the loggers this service cares about with ``LOG_LEVEL``: the
``countdown_api`` package and uvicorn's own loggers.  ``run.py`` starts
uvicorn with ``log_config=None`` so uvicorn's records flow through the
same handlers and format instead of uvicorn's default configuration.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Loggers whose level follows LOG_LEVEL even when handlers already exist.
SERVICE_LOGGERS = ("countdown_api", "uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> int:
    """Configure logging for the service and return the numeric level.

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
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    for name in SERVICE_LOGGERS:
        logging.getLogger(name).setLevel(numeric_level)

    root = logging.getLogger()
    if root.handlers:
        # create_app may run several times in one process (tests).
        return numeric_level

    root.setLevel(numeric_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return numeric_level
