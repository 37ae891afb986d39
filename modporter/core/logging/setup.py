# modporter/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from typing import TYPE_CHECKING

from .formatters import DevFormatter, JsonFormatter
from .filters import RecurringSuppressFilter

if TYPE_CHECKING:
    from modporter.config.settings import LoggingSettings

__all__ = [
    "configureLogging",
]



def configureLogging(settings: LoggingSettings | None = None) -> None:
    """
    Initiate the logging configuration for an import session.

    Dev:
      - Console pretty logs (DEBUG)
      - JSON file log (DEBUG), when a log file is configured

    Prod:
      - Console INFO
      - JSON file logs INFO with rotation
      - Optional recurring suppression (toggle)
    """
    if settings is None:
        from modporter.config.settings import LoggingSettings
        settings = LoggingSettings()

    rootLevel = logging.DEBUG if settings.devMode else logging.INFO

    root = logging.getLogger("modporter")
    root.handlers.clear()
    root.setLevel(rootLevel)
    root.propagate = settings.propagate

    handlers: list[logging.Handler] = []

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(DevFormatter())
    handlers.append(consoleHandler)

    if settings.logFile:
        fileHandler = logging.handlers.RotatingFileHandler(
            settings.logFile,
            maxBytes=settings.maxBytes,
            backupCount=settings.backupCount,
            encoding="utf-8"
        )
        fileHandler.setLevel(rootLevel)
        fileHandler.setFormatter(JsonFormatter())
        handlers.append(fileHandler)

    # Optional recurring suppression (disabled by default)
    suppress = settings.suppressRecurring
    if suppress.enabled:
        # Resolve summaryLevel string like "INFO" → logging.INFO, fallback safe
        summaryLevel = getattr(logging, str(suppress.summaryLevel).upper(), logging.INFO)
        suppressFilter = RecurringSuppressFilter(
            windowSeconds=suppress.windowSeconds,
            maxPerWindow=suppress.maxPerWindow,
            summaryLevel=summaryLevel,
        )
        for handler in handlers:
            handler.addFilter(suppressFilter)

    for handler in handlers:
        root.addHandler(handler)
