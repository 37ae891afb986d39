# modporter/porting/package.py
from __future__ import annotations
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from threading import RLock
from types import MappingProxyType

from modporter.core.errors import DuplicateResourceError, ResourceNotFoundError
from .resources import BuiltResource

logger = logging.getLogger(__name__)

__all__ = ["ModPackage", "PluginRecord"]



@dataclass(frozen=True)
class PluginRecord:
    name: str
    priority: int



class ModPackage:
    """
    Everything imported under one package key, indexed as
    baseType -> resourceKey -> resources (insertion ordered, identity unique).

    Lookups take the porter base type, not the concrete type tag; the session
    maps one to the other.
    """

    def __init__(self, key: str):
        self.key = key
        self._index: dict[str, dict[str, dict[int, BuiltResource]]] = {}
        self._plugins: list[PluginRecord] = []
        self._snapshot: Mapping[str, Mapping[str, tuple[BuiltResource, ...]]] | None = None
        self._lock = RLock()

    # ----- Mutation -----

    def add(self, baseType: str, resourceKey: str, resources: Iterable[BuiltResource]) -> None:
        """Add resources under one slot. Adding the same object twice raises DuplicateResourceError."""
        resources = list(resources)
        if not resources:
            return
        with self._lock:
            existing = self._index.get(baseType, {}).get(resourceKey, {})
            seen: set[int] = set()
            for resource in resources:
                if id(resource) in existing or id(resource) in seen:
                    raise DuplicateResourceError(
                        f"{resource!r} has already been added to the mod package '{self.key}'"
                    )
                seen.add(id(resource))
            slot = self._index.setdefault(baseType, {}).setdefault(resourceKey, {})
            for resource in resources:
                slot[id(resource)] = resource
            self._snapshot = None
        logger.debug("Package '%s': added %d resource(s) under %s/%s", self.key, len(resources), baseType, resourceKey)

    def remove(self, resource: BuiltResource, baseType: str | None = None) -> bool:
        """Drop one resource; empty slots disappear. Returns False if it was not registered here."""
        with self._lock:
            baseTypes = [baseType] if baseType is not None else list(self._index)
            for base in baseTypes:
                byKey = self._index.get(base)
                if not byKey:
                    continue
                slot = byKey.get(resource.resourceKey)
                if not slot or id(resource) not in slot:
                    continue
                del slot[id(resource)]
                if not slot:
                    del byKey[resource.resourceKey]
                if not byKey:
                    del self._index[base]
                self._snapshot = None
                return True
            return False

    def addPlugin(self, name: str, priority: int) -> PluginRecord:
        record = PluginRecord(name=name, priority=priority)
        with self._lock:
            self._plugins.append(record)
            self._plugins.sort(key=lambda plugin: plugin.priority)
        return record

    # ----- Lookup -----

    def get(self, baseType: str, resourceKey: str) -> list[BuiltResource]:
        found = self.tryGet(baseType, resourceKey)
        if not found:
            raise ResourceNotFoundError(resourceKey, baseType)
        return found

    def tryGet(self, baseType: str, resourceKey: str) -> list[BuiltResource]:
        with self._lock:
            slot = self._index.get(baseType, {}).get(resourceKey)
            return list(slot.values()) if slot else []

    def has(self, baseType: str, resourceKey: str) -> bool:
        return bool(self.tryGet(baseType, resourceKey))

    def getOfAnyType(self, resourceKey: str) -> list[BuiltResource]:
        found = self.tryGetOfAnyType(resourceKey)
        if not found:
            raise ResourceNotFoundError(resourceKey)
        return found

    def tryGetOfAnyType(self, resourceKey: str) -> list[BuiltResource]:
        with self._lock:
            out: list[BuiltResource] = []
            for byKey in self._index.values():
                slot = byKey.get(resourceKey)
                if slot:
                    out.extend(slot.values())
            return out

    @property
    def importedResources(self) -> list[BuiltResource]:
        with self._lock:
            return [resource for byKey in self._index.values() for slot in byKey.values() for resource in slot.values()]

    @property
    def importedCount(self) -> int:
        with self._lock:
            return sum(len(slot) for byKey in self._index.values() for slot in byKey.values())

    @property
    def plugins(self) -> tuple[PluginRecord, ...]:
        with self._lock:
            return tuple(self._plugins)

    def byResourceKey(self) -> Mapping[str, Mapping[str, tuple[BuiltResource, ...]]]:
        """Read-only snapshot; rebuilt on the first call after a mutation."""
        with self._lock:
            if self._snapshot is None:
                self._snapshot = MappingProxyType({
                    base: MappingProxyType({key: tuple(slot.values()) for key, slot in byKey.items()})
                    for base, byKey in self._index.items()
                })
            return self._snapshot

    def __repr__(self) -> str:
        return f"ModPackage({self.key!r}, resources={self.importedCount})"
