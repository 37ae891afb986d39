# modporter/porting/types.py
from __future__ import annotations
from threading import RLock

from modporter.core.errors import NotFoundError

__all__ = ["TypeHierarchy"]



class TypeHierarchy:
    """
    Explicit inheritance table for resource type tags.

    Porters register against a base tag; concrete resource kinds declare their
    parent once at startup. Resolution walks this table, never Python classes.
    """

    def __init__(self) -> None:
        self._parents: dict[str, str | None] = {}
        self._lock = RLock()

    def declare(self, tag: str, parent: str | None = None) -> None:
        tag = str(tag).strip()
        if not tag:
            raise ValueError("Type tag must be a non-empty string")
        with self._lock:
            if parent is not None and parent not in self._parents:
                raise NotFoundError(f"Parent type '{parent}' must be declared before '{tag}'")
            if tag in self._parents:
                if self._parents[tag] != parent:
                    raise ValueError(
                        f"Type '{tag}' is already declared with parent '{self._parents[tag]}', not '{parent}'"
                    )
                return
            self._parents[tag] = parent

    def isDeclared(self, tag: str) -> bool:
        with self._lock:
            return tag in self._parents

    def parentOf(self, tag: str) -> str | None:
        with self._lock:
            if tag not in self._parents:
                raise NotFoundError(f"Type '{tag}' has not been declared")
            return self._parents[tag]

    def lineage(self, tag: str) -> list[str]:
        """The tag itself followed by its ancestors, nearest first."""
        with self._lock:
            if tag not in self._parents:
                raise NotFoundError(f"Type '{tag}' has not been declared")
            out = [tag]
            current = self._parents[tag]
            while current is not None:
                out.append(current)
                current = self._parents[current]
            return out

    def depth(self, tag: str) -> int:
        return len(self.lineage(tag)) - 1

    def isAssignable(self, base: str, tag: str) -> bool:
        with self._lock:
            if tag not in self._parents:
                return False
            return base in self.lineage(tag)

    def tags(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._parents)
