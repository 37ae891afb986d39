# modporter/porting/resolver.py
from __future__ import annotations
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from modporter.core.errors import MissingFieldError
from .constants import (
    CONFIG_FILE_NAME,
    DEFAULT_PACKAGE_SUFFIX,
    IMPORT_FOLDER_NAME,
    MOD_FOLDER_NAME,
    MODEL_DATA_EXTENSION,
    NAME_CONFIG_KEY,
)
from .keys import ResourceKey, validateKeyPart
from .options import ImportOptions, ResourceConfig

logger = logging.getLogger(__name__)

__all__ = ["ResolvedIdentity", "ResourceKeyResolver"]

_RESERVED_STEM = CONFIG_FILE_NAME.rsplit(".", 1)[0]



@dataclass(frozen=True)
class ResolvedIdentity:
    resourceName: str
    packageName: str
    resourceKey: str
    # Folder-derived layout path ("Blades/Sword"); equals resourceName for flat names
    resourcePath: str

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.packageName, self.resourceName)



def _absolute(path: Path) -> str:
    return os.path.normcase(os.path.abspath(path))



def stemOf(path: Path) -> str:
    """File name without its extension; "*.data.json" loses both suffixes."""
    name = path.name
    if name.lower().endswith(MODEL_DATA_EXTENSION):
        return name[: -len(MODEL_DATA_EXTENSION)]
    return path.stem



class ResourceKeyResolver:
    """
    Works out (resourceName, packageName) for a candidate file.

    Name:    option Name > config name > file stem for a loose asset; for a
             config or a single-resource folder, the folder path below the
             porter's sub folder (the stem when there is none).
    Package: option PackageName > config packageName > the folder directly
             below the inbox / mods root > "<user>'s Custom Assets".
    """

    def __init__(self, modsRoot: Path, inboxRoot: Path, currentUser: Callable[[], str]):
        self.modsRoot = Path(modsRoot)
        self.inboxRoot = Path(inboxRoot)
        self._currentUser = currentUser

    def resolve(
        self,
        primaryFile: Path,
        *,
        fromSingleResourceFolder: bool,
        options: ImportOptions | None = None,
        config: ResourceConfig | None = None,
        subFolderName: str | None = None,
    ) -> ResolvedIdentity:
        primaryFile = Path(primaryFile)
        options = options or ImportOptions()

        resourcePath = self.resolveName(
            primaryFile,
            fromSingleResourceFolder=fromSingleResourceFolder,
            options=options,
            config=config,
            subFolderName=subFolderName,
        )
        packageName = self.resolvePackage(primaryFile, options=options, config=config)

        leaf = resourcePath.rsplit("/", 1)[-1]
        validateKeyPart(leaf, what="resource name")
        validateKeyPart(packageName, what="package name")
        key = ResourceKey(packageName, leaf)
        logger.debug("Resolved '%s' -> '%s' (layout '%s')", primaryFile, key, resourcePath)
        return ResolvedIdentity(
            resourceName=leaf,
            packageName=packageName,
            resourceKey=key.composite,
            resourcePath=resourcePath,
        )

    # ----- Name -----

    def resolveName(
        self,
        primaryFile: Path,
        *,
        fromSingleResourceFolder: bool,
        options: ImportOptions,
        config: ResourceConfig | None,
        subFolderName: str | None,
    ) -> str:
        if options.name and options.name.strip():
            name = options.name
        elif config is not None and config.name and config.name.strip():
            name = config.name
        elif fromSingleResourceFolder or config is not None:
            # A config describes its folder, never itself
            name = self._folderDerivedName(primaryFile, subFolderName) or stemOf(primaryFile)
        else:
            name = stemOf(primaryFile)

        name = "/".join(part.strip() for part in name.replace("\\", "/").split("/") if part.strip())
        if not name or name == _RESERVED_STEM:
            raise MissingFieldError(
                NAME_CONFIG_KEY,
                f"Could not determine a resource name for '{primaryFile}'; set '{NAME_CONFIG_KEY}' in its config",
            )
        return name

    def _folderDerivedName(self, primaryFile: Path, subFolderName: str | None) -> str | None:
        """Path from the porter's sub folder down to the file's folder, or None if there is no such ancestor."""
        if not subFolderName:
            return None
        parts: list[str] = []
        current = primaryFile.parent
        while True:
            if current.name == subFolderName:
                break
            if current.parent == current or self._isSentinel(current):
                return None
            parts.append(current.name)
            current = current.parent
        if not parts:
            return None
        return "/".join(reversed(parts))

    # ----- Package -----

    def resolvePackage(
        self,
        primaryFile: Path,
        *,
        options: ImportOptions,
        config: ResourceConfig | None,
    ) -> str:
        if options.packageName and options.packageName.strip():
            return options.packageName.strip()
        if config is not None and config.packageName and config.packageName.strip():
            return config.packageName.strip()

        previous: Path | None = None
        current = primaryFile.parent
        while current.parent != current:
            if self._isSentinel(current):
                if previous is not None:
                    return previous.name
                break
            previous = current
            current = current.parent
        return self.defaultPackageName()

    def defaultPackageName(self) -> str:
        return f"{self._currentUser()}{DEFAULT_PACKAGE_SUFFIX}"

    def _isSentinel(self, folder: Path) -> bool:
        if folder.name in (IMPORT_FOLDER_NAME, MOD_FOLDER_NAME):
            return True
        absolute = _absolute(folder)
        return absolute in (_absolute(self.inboxRoot), _absolute(self.modsRoot))
