# modporter/core/logging/context.py
from __future__ import annotations
import contextvars

# All log context lives here. Enriched by the import pipeline per run.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("modporter.logctx", default=None)

def setLogContext(**kvs):
    """Set or update per-log context values (runId, porter, packageName, etc.)."""
    current = dict(_logContextVar.get() or {}) # use copy
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    _logContextVar.set(current)

def clearLogContext():
    """Clear context after an import run is fully handled."""
    _logContextVar.set(None)

def getLogContext():
    """Return current context dict or None."""
    return _logContextVar.get()
