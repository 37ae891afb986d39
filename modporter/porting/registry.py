# modporter/porting/registry.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Generic, TypeVar

from modporter.core.errors import DuplicateResourceError, NotFoundError, PorterNotFoundError
from .porter import Porter
from .types import TypeHierarchy

logger = logging.getLogger(__name__)

__all__ = [
    "PorterRegistry",
    "RegistryCacheInfo",
]

P = TypeVar("P", bound=Porter)



@dataclass(frozen=True)
class RegistryCacheInfo:
    hits: int
    misses: int
    # Number of full scans over the registered base types
    scans: int
    size: int



@dataclass
class PorterRegistry(Generic[P]):
    """
    One porter per registered base type; any declared sub type resolves to the
    porter of its most specific registered ancestor.

    Resolutions are cached under the requested tag. Registering a more specific
    porter later drops cached entries it now wins.
    """

    hierarchy: TypeHierarchy = field(default_factory=TypeHierarchy)
    flavour: str = "porter"

    def __post_init__(self) -> None:
        self._porters: dict[str, P] = {}
        self._bySubFolder: dict[str, P] = {}
        self._cache: dict[str, P] = {}
        self._lock = RLock()
        self._hits = 0
        self._misses = 0
        self._scans = 0

    # ----- Registration -----

    def register(self, porter: P) -> None:
        base = porter.baseType
        with self._lock:
            if base in self._porters:
                raise DuplicateResourceError(f"A {self.flavour} is already registered for base type '{base}'")
            if not self.hierarchy.isDeclared(base):
                self.hierarchy.declare(base)
            subFolder = porter.subFolderName
            if subFolder in self._bySubFolder:
                raise DuplicateResourceError(
                    f"Sub folder '{subFolder}' is already owned by the {self.flavour} for "
                    f"'{self._bySubFolder[subFolder].baseType}'"
                )

            self._porters[base] = porter
            self._bySubFolder[subFolder] = porter
            self._invalidateFor(base)
        logger.debug("Registered %s '%s' for base type '%s'", self.flavour, type(porter).__name__, base)

    def _invalidateFor(self, newBase: str) -> None:
        newDepth = self.hierarchy.depth(newBase)
        stale = [
            requested
            for requested, cached in self._cache.items()
            if self.hierarchy.isAssignable(newBase, requested)
            and self.hierarchy.depth(cached.baseType) < newDepth
        ]
        for requested in stale:
            del self._cache[requested]
        if stale:
            logger.debug("Dropped %d cached resolution(s) superseded by '%s'", len(stale), newBase)

    # ----- Resolution -----

    def tryResolve(self, typeTag: str) -> P | None:
        with self._lock:
            exact = self._porters.get(typeTag)
            if exact is not None:
                self._hits += 1
                return exact
            cached = self._cache.get(typeTag)
            if cached is not None:
                self._hits += 1
                return cached

            self._misses += 1
            found = self._scan(typeTag)
            if found is not None:
                self._cache[typeTag] = found
            return found

    def resolve(self, typeTag: str) -> P:
        porter = self.tryResolve(typeTag)
        if porter is None:
            raise PorterNotFoundError(typeTag, self.flavour)
        return porter

    def _scan(self, typeTag: str) -> P | None:
        self._scans += 1
        if not self.hierarchy.isDeclared(typeTag):
            return None
        best: P | None = None
        bestDepth = -1
        for base, porter in self._porters.items():
            if not self.hierarchy.isAssignable(base, typeTag):
                continue
            depth = self.hierarchy.depth(base)
            if depth > bestDepth:
                best, bestDepth = porter, depth
        return best

    def baseTypeOf(self, typeTag: str) -> str:
        return self.resolve(typeTag).baseType

    # ----- Introspection -----

    def porters(self) -> list[P]:
        with self._lock:
            return list(self._porters.values())

    def forSubFolder(self, subFolderName: str) -> P:
        with self._lock:
            if subFolderName not in self._bySubFolder:
                raise NotFoundError(f"No {self.flavour} owns the sub folder '{subFolderName}'")
            return self._bySubFolder[subFolderName]

    def tryForSubFolder(self, subFolderName: str) -> P | None:
        with self._lock:
            return self._bySubFolder.get(subFolderName)

    def cacheInfo(self) -> RegistryCacheInfo:
        with self._lock:
            return RegistryCacheInfo(hits=self._hits, misses=self._misses, scans=self._scans, size=len(self._cache))

    def __contains__(self, typeTag: str) -> bool:
        return self.tryResolve(typeTag) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._porters)
