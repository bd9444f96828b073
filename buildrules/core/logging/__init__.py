# buildrules/core/logging/__init__.py
from __future__ import annotations

from .context import setLogContext, resetLogContext, clearLogContext, getLogContext
from .setup import configureLogging, getLogger

__all__ = [
    "configureLogging",
    "getLogger",
    "setLogContext",
    "resetLogContext",
    "clearLogContext",
    "getLogContext",
]
