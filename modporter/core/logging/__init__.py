from __future__ import annotations

from .context import setLogContext, clearLogContext, getLogContext
from .setup import configureLogging
from .util import getPorterLogger

__all__ = [
    "configureLogging",
    "getPorterLogger",
    "setLogContext",
    "clearLogContext",
    "getLogContext",
]
