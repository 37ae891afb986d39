# modporter/core/cancel.py
from __future__ import annotations
import threading

__all__ = ["CancelToken"]



class CancelToken:
    """
    Cooperative cancellation flag.

    The import pipeline only looks at it between phases, so cancelling never
    leaves a phase half-applied.
    """
    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason
