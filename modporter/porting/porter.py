# modporter/porting/porter.py
from __future__ import annotations
import logging
import shutil
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from modporter.core.errors import MalformedKeyError, NotFoundError
from modporter.core.logging import getPorterLogger
from .constants import (
    DESCRIPTION_CONFIG_KEY,
    MOVE_TO_FINISHED_OPTION,
    NAME_CONFIG_KEY,
    NAME_OPTION,
    PACKAGE_NAME_CONFIG_KEY,
    PACKAGE_NAME_OPTION,
    RECURSIVE_OPTION,
    TAGS_CONFIG_KEY,
)
from .keys import ResourceKey, parseKey
from .resources import AssetBuildRequest, BuiltResource, ConfigBuildRequest, PortResult

if TYPE_CHECKING:
    from .context import ModPorterContext
    from .resolver import ResolvedIdentity

__all__ = ["Porter", "ArchetypePorter"]

R = TypeVar("R", bound=BuiltResource)



class Porter(ABC):
    """
    Strategy for one resource kind: where its instances live on disk, how to
    build them from files, and how to write them back.

    Subclasses set `baseType` (type tag they own) and usually `subFolderName`
    (the per-kind folder under a package, e.g. "Weapons").
    """

    baseType: str
    subFolderName: str | None = None
    flavour: ClassVar[str] = "archetype"

    validOptionKeys: ClassVar[frozenset[str]] = frozenset({
        NAME_OPTION,
        PACKAGE_NAME_OPTION,
        MOVE_TO_FINISHED_OPTION,
        RECURSIVE_OPTION,
    })
    validConfigKeys: ClassVar[frozenset[str]] = frozenset({
        NAME_CONFIG_KEY,
        PACKAGE_NAME_CONFIG_KEY,
        DESCRIPTION_CONFIG_KEY,
        TAGS_CONFIG_KEY,
    })

    def __init__(self, *, baseType: str | None = None, subFolderName: str | None = None) -> None:
        if baseType:
            self.baseType = baseType
        if not getattr(self, "baseType", None):
            raise TypeError(f"{type(self).__name__} must define a baseType")
        if subFolderName:
            self.subFolderName = subFolderName
        elif self.subFolderName is None:
            self.subFolderName = self.baseType
        self._context: ModPorterContext | None = None
        self.logger: logging.Logger = getPorterLogger(self.subFolderName)

    # ----- Session binding -----

    def bind(self, context: ModPorterContext) -> None:
        if self._context is not None and self._context is not context:
            raise RuntimeError(f"{type(self).__name__} is already bound to another session")
        self._context = context

    @property
    def context(self) -> ModPorterContext:
        if self._context is None:
            raise RuntimeError(f"{type(self).__name__} is not registered with a ModPorterContext")
        return self._context

    @property
    def defaultPackageName(self) -> str:
        return self.subFolderName

    @property
    def modsRoot(self) -> Path:
        return self.context.modsRoot

    # ----- Import / export -----

    @abstractmethod
    def buildFromConfig(self, request: ConfigBuildRequest) -> PortResult:
        """Build from one parsed config plus candidate assets. Must consume at least the config."""

    @abstractmethod
    def buildFromLooseAssets(self, request: AssetBuildRequest) -> PortResult:
        """Build from assets with no config; policy is kind specific."""

    @abstractmethod
    def serializeToFiles(self, resource: BuiltResource, destinationFolder: Path) -> list[Path]:
        """Write one resource to files under destinationFolder. Returns the written paths."""

    # ----- Layout -----

    def locateFolder(
        self,
        key: ResourceKey | str | tuple[str, str | None],
        *,
        resourcePath: str | None = None,
    ) -> Path:
        """
        mods/<package>/<subFolderName>/<resourcePath or name>
        or mods/<subFolderName>/<name> for resources without a package.

        `key` is a ResourceKey, a composite "pkg::name" string or a (name, package) pair.
        """
        if isinstance(key, tuple):
            key = ResourceKey(key[1], key[0])
        elif isinstance(key, str):
            key = parseKey(key)
        parts = _safeParts(resourcePath or key.resourceName)
        if key.packageName is None:
            return self.modsRoot.joinpath(self.subFolderName, *parts)
        return self.modsRoot.joinpath(*_safeParts(key.packageName), self.subFolderName, *parts)

    def locateFolderForResource(self, resource: BuiltResource) -> Path:
        return self.locateFolder(resource.key, resourcePath=resource.resourcePath)

    def serializeToModFolder(self, resource: BuiltResource) -> list[Path]:
        return self.serializeToFiles(resource, self.locateFolderForResource(resource))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(baseType={self.baseType!r}, subFolder={self.subFolderName!r})"



def _safeParts(relative: str) -> list[str]:
    parts = [part.strip() for part in relative.replace("\\", "/").split("/") if part.strip()]
    if not parts:
        raise MalformedKeyError(f"Cannot build a folder from an empty name ('{relative}')")
    for part in parts:
        if part in (".", ".."):
            raise MalformedKeyError(f"Relative segment '{part}' is not allowed in '{relative}'")
    return parts



class ArchetypePorter(Porter):
    """
    Porter for archetype-like resources. Adds folder rename helpers on top of
    the base operations.
    """

    flavour: ClassVar[str] = "archetype"

    def makeResource(
        self,
        identity: ResolvedIdentity,
        sourceFiles: Iterable[Path],
        *,
        factory: type[R] = BuiltResource,
        typeTag: str | None = None,
        **fields: Any,
    ) -> R:
        """Stamp a resolved identity and its source files onto a new resource."""
        return factory(
            typeTag=typeTag or self.baseType,
            key=identity.key,
            resourcePath=identity.resourcePath,
            sourceFiles=tuple(sourceFiles),
            **fields,
        )

    def tryMoveRenamedFolder(self, oldName: str, resource: BuiltResource) -> bool:
        """
        Move the resource's folder from its old name to its current one within the same package.
        Returns False (and touches nothing) if the target already exists.
        """
        newFolder = self.locateFolderForResource(resource)
        if newFolder.exists():
            return False
        oldFolder = self._oldFolder(oldName, resource)
        newFolder.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(oldFolder), str(newFolder))
        self.logger.info("Moved '%s' -> '%s'", oldFolder, newFolder)
        return True

    def forceMoveRenamedFolder(self, oldName: str, resource: BuiltResource) -> None:
        """
        Same as tryMoveRenamedFolder, but empties an existing target first.
        WARNING: this overwrites whatever resource lived under the new name.
        """
        newFolder = self.locateFolderForResource(resource)
        oldFolder = self._oldFolder(oldName, resource)
        if newFolder.exists():
            for child in newFolder.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        newFolder.mkdir(parents=True, exist_ok=True)
        shutil.copytree(oldFolder, newFolder, dirs_exist_ok=True)
        shutil.rmtree(oldFolder)
        self.logger.info("Force moved '%s' -> '%s'", oldFolder, newFolder)

    def _oldFolder(self, oldName: str, resource: BuiltResource) -> Path:
        oldFolder = self.locateFolder(ResourceKey(resource.packageKey, oldName))
        if not oldFolder.is_dir():
            raise NotFoundError(f"No folder for '{oldName}' at '{oldFolder}'")
        return oldFolder
