# buildrules/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path

from .formatters import DevFormatter, JsonFormatter

__all__ = [
    "NO_PROPAGATE",
    "configureLogging",
    "getLogger",
]



# Disable propagation from noisy libraries
NO_PROPAGATE = [
    "concurrent.futures",
]



def configureLogging(*, devMode: bool = True, logFile: str | Path | None = None, quiet: bool = False) -> None:
    """
    Initiate the global logging configuration.

    Dev:
      - Console pretty logs (DEBUG)
      - JSON file log (DEBUG) when logFile is set

    Prod:
      - Console INFO
      - JSON file log INFO with rotation when logFile is set

    quiet silences the console below CRITICAL (machine-readable CLI output).
    """
    rootLevel = logging.DEBUG if devMode else logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)

    for name in NO_PROPAGATE:
        logging.getLogger(name).propagate = False

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(logging.CRITICAL if quiet else rootLevel)
    consoleHandler.setFormatter(DevFormatter())
    root.addHandler(consoleHandler)

    if logFile:
        fileHandler = logging.handlers.RotatingFileHandler(
            str(logFile),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        fileHandler.setLevel(rootLevel)
        fileHandler.setFormatter(JsonFormatter())
        root.addHandler(fileHandler)



def getLogger(name: str, side: str = "") -> logging.Logger:
    return logging.getLogger(f"{str(side).strip()}.{str(name).strip()}" if str(side).strip() else str(name).strip())
