# tests/modporter/core/test_logging_setup.py
from __future__ import annotations
import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from modporter.config.settings import LoggingSettings, SuppressRecurringSettings
from modporter.core.logging import clearLogContext, configureLogging, getPorterLogger, setLogContext
from modporter.core.logging.filters import RecurringSuppressFilter
from modporter.core.logging.formatters import DevFormatter, JsonFormatter


@pytest.fixture()
def restoreLogging() -> Iterator[None]:
    root = logging.getLogger("modporter")
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate
    clearLogContext()


def test_configureLogging_writesJsonLinesWithRunContext(tmp_path: Path, restoreLogging) -> None:
    logFile = tmp_path / "import.log"
    configureLogging(LoggingSettings(devMode=True, logFile=str(logFile), propagate=False))

    setLogContext(runId="import-1234", porter="Weapons", phase="config")
    getPorterLogger("Weapons").debug("Built %s", "Acme::Sword")
    for handler in logging.getLogger("modporter").handlers:
        handler.flush()

    record = json.loads(logFile.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert record["logger"] == "modporter.porters.Weapons"
    assert record["level"] == "debug"
    assert record["msg"] == "Built Acme::Sword"
    assert record["ctx"] == {"runId": "import-1234", "porter": "Weapons", "phase": "config"}


def test_configureLogging_attachesSuppressFilterWhenEnabled(restoreLogging) -> None:
    configureLogging(LoggingSettings(suppressRecurring=SuppressRecurringSettings(enabled=True, summaryLevel="warning")))

    root = logging.getLogger("modporter")
    assert root.level == logging.INFO
    filters = [flt for handler in root.handlers for flt in handler.filters]
    assert len(filters) == 1
    assert isinstance(filters[0], RecurringSuppressFilter)
    assert filters[0].summaryLevel == logging.WARNING


def test_devFormatter_appendsShortRunContext(restoreLogging) -> None:
    setLogContext(runId="import-0123456789abcdef", porter="Assets")
    record = logging.LogRecord("modporter.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)

    assert DevFormatter().format(record) == "INFO: [modporter.test] hello world [89abcdef/Assets]"


def test_jsonFormatter_includesException() -> None:
    try:
        raise ValueError("broken config")
    except ValueError:
        import sys
        record = logging.LogRecord("modporter.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))

    assert payload["exc"]["type"] == "ValueError"
    assert payload["exc"]["message"] == "broken config"
    assert "Traceback" in payload["exc"]["stack"]
