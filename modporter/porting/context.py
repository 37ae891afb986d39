# modporter/porting/context.py
from __future__ import annotations
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from threading import RLock
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel

from modporter.config.settings import ImporterSettings
from modporter.core.cancel import CancelToken
from modporter.core.errors import (
    MissingFieldError,
    PackageNotFoundError,
    PorterNotFoundError,
    ResourceNotFoundError,
)
from .constants import (
    MOVE_TO_FINISHED_OPTION,
    NAME_OPTION,
    PACKAGE_NAME_CONFIG_KEY,
    PACKAGE_NAME_OPTION,
    RECURSIVE_OPTION,
    isIgnoredName,
)
from .keys import ResourceKey, packageOf, parseKey
from .model_porter import ModelPorter
from .options import ImportOptions
from .package import ModPackage, PluginRecord
from .pipeline import ImportPipeline, ImportReport
from .plugins import LoadedPlugin, loadPlugins
from .porter import ArchetypePorter, Porter
from .registry import PorterRegistry
from .resolver import ResourceKeyResolver
from .resources import BuiltResource
from .types import TypeHierarchy

logger = logging.getLogger(__name__)

__all__ = ["ModPorterContext"]



class ModPorterContext:
    """
    One import session: settings, porters, packages and everything imported so far.

    Nothing here is global; create one per data root.
    """

    def __init__(
        self,
        settings: ImporterSettings | None = None,
        *,
        porters: Iterable[Porter] = (),
        currentUser: Callable[[], str] | None = None,
        hierarchy: TypeHierarchy | None = None,
    ):
        self.settings = settings or ImporterSettings()
        self.hierarchy = hierarchy or TypeHierarchy()
        self.archetypePorters: PorterRegistry[ArchetypePorter] = PorterRegistry(self.hierarchy, flavour="archetype porter")
        self.modelPorters: PorterRegistry[ModelPorter] = PorterRegistry(self.hierarchy, flavour="model porter")
        self.currentUser: Callable[[], str] = currentUser or self.settings.resolveUserName
        self.resolver = ResourceKeyResolver(self.settings.modsRoot, self.settings.inboxRoot, self.currentUser)
        self._packages: dict[str, ModPackage] = {}
        self._lock = RLock()

        for porter in porters:
            self.registerPorter(porter)

    # ----- Layout -----

    @property
    def modsRoot(self) -> Path:
        return self.settings.modsRoot

    @property
    def dataRoot(self) -> Path:
        return self.settings.dataRoot

    @property
    def inboxRoot(self) -> Path:
        return self.settings.inboxRoot

    # ----- Types and porters -----

    def declareType(self, tag: str, parent: str | None = None) -> None:
        self.hierarchy.declare(tag, parent)

    def registerPorter(self, porter: Porter) -> Porter:
        porter.bind(self)
        if porter.flavour == "model":
            self.modelPorters.register(porter)
        else:
            self.archetypePorters.register(porter)
        logger.info("Registered %s for '%s' (sub folder '%s')", type(porter).__name__, porter.baseType, porter.subFolderName)
        return porter

    def tryPorterFor(self, typeTag: str) -> Porter | None:
        return self.archetypePorters.tryResolve(typeTag) or self.modelPorters.tryResolve(typeTag)

    def porterFor(self, typeTag: str) -> Porter:
        porter = self.tryPorterFor(typeTag)
        if porter is None:
            raise PorterNotFoundError(typeTag)
        return porter

    def getArchetypePorter(self, typeTag: str) -> ArchetypePorter:
        return self.archetypePorters.resolve(typeTag)

    def tryGetArchetypePorter(self, typeTag: str) -> ArchetypePorter | None:
        return self.archetypePorters.tryResolve(typeTag)

    def getModelPorter(self, modelType: type[BaseModel] | str) -> ModelPorter:
        return self.modelPorters.resolve(_tagOf(modelType))

    def tryGetModelPorter(self, modelType: type[BaseModel] | str) -> ModelPorter | None:
        return self.modelPorters.tryResolve(_tagOf(modelType))

    # ----- Packages -----

    @property
    def packages(self) -> Mapping[str, ModPackage]:
        with self._lock:
            return MappingProxyType(dict(self._packages))

    def getModPackage(self, packageOrResourceKey: str) -> ModPackage:
        package = self.tryGetModPackage(packageOrResourceKey)
        if package is None:
            raise PackageNotFoundError(packageOf(packageOrResourceKey))
        return package

    def tryGetModPackage(self, packageOrResourceKey: str) -> ModPackage | None:
        with self._lock:
            return self._packages.get(packageOf(packageOrResourceKey))

    def _packageFor(self, packageKey: str) -> ModPackage:
        with self._lock:
            package = self._packages.get(packageKey)
            if package is None:
                package = self._packages[packageKey] = ModPackage(packageKey)
                logger.debug("Created mod package '%s'", packageKey)
            return package

    def updatePackageFromPlugin(self, packageKey: str, pluginName: str, priority: int) -> PluginRecord:
        return self._packageFor(packageKey).addPlugin(pluginName, priority)

    def loadPlugins(self, loader: Callable[[Path], Any] | None = None) -> tuple[list[LoadedPlugin], list[dict[str, Any]]]:
        return loadPlugins(self, loader)

    # ----- Resources -----

    def recordResources(self, resources: Iterable[BuiltResource]) -> None:
        for resource in resources:
            if resource.packageKey is None:
                raise MissingFieldError(PACKAGE_NAME_CONFIG_KEY, f"{resource!r} has no package and cannot be recorded")
            baseType = self.porterFor(resource.typeTag).baseType
            self._packageFor(resource.packageKey).add(baseType, resource.resourceKey, [resource])

    def getResources(self, typeTag: str, resourceKey: str) -> list[BuiltResource]:
        return self.getModPackage(resourceKey).get(self.porterFor(typeTag).baseType, resourceKey)

    def tryGetResources(self, typeTag: str, resourceKey: str) -> list[BuiltResource]:
        package = self.tryGetModPackage(resourceKey)
        porter = self.tryPorterFor(typeTag)
        if package is None or porter is None:
            return []
        return package.tryGet(porter.baseType, resourceKey)

    def tryGetResourcesOfAnyType(self, resourceKey: str) -> list[BuiltResource]:
        package = self.tryGetModPackage(resourceKey)
        return package.tryGetOfAnyType(resourceKey) if package is not None else []

    def onResourceUnloaded(self, resource: BuiltResource) -> bool:
        """Forget an unloaded resource. Returns False when it was not recorded."""
        if resource.packageKey is None:
            return False
        package = self.tryGetModPackage(resource.packageKey)
        if package is None:
            return False
        porter = self.tryPorterFor(resource.typeTag)
        return package.remove(resource, porter.baseType if porter is not None else None)

    # ----- Import / export -----

    def importFiles(
        self,
        typeTag: str,
        paths: Iterable[Path | str],
        options: ImportOptions | Mapping[str, Any] | None = None,
        *,
        cancel: CancelToken | None = None,
    ) -> ImportReport:
        return ImportPipeline(self).run(typeTag, paths, options, cancel=cancel)

    def importFromModsFolder(
        self,
        typeTag: str,
        options: ImportOptions | Mapping[str, Any] | None = None,
        *,
        cancel: CancelToken | None = None,
    ) -> ImportReport:
        """Import the flat contents of mods/<package>/<subFolderName> for every package."""
        porter = self.porterFor(typeTag)
        return self.importFiles(typeTag, self._packageContents(self.modsRoot, porter), options, cancel=cancel)

    def importFromInbox(
        self,
        typeTag: str,
        options: ImportOptions | Mapping[str, Any] | None = None,
        *,
        cancel: CancelToken | None = None,
    ) -> ImportReport:
        """Same as importFromModsFolder over mods/__imports; files move to finished unless told otherwise."""
        porter = self.porterFor(typeTag)
        options = ImportOptions.coerce(options)
        if not options.explicitlySet("moveImportedFilesToFinished"):
            options = ImportOptions.coerce({**_wireOptions(options), MOVE_TO_FINISHED_OPTION: True})
        return self.importFiles(typeTag, self._packageContents(self.inboxRoot, porter), options, cancel=cancel)

    def _packageContents(self, root: Path, porter: Porter) -> list[Path]:
        if not root.is_dir():
            logger.debug("'%s' does not exist; nothing to import", root)
            return []
        out: list[Path] = []
        for packageFolder in sorted(child for child in root.iterdir() if child.is_dir()):
            if isIgnoredName(packageFolder.name):
                continue
            kindFolder = packageFolder / porter.subFolderName
            if kindFolder.is_dir():
                out.extend(sorted(child for child in kindFolder.iterdir() if not isIgnoredName(child.name)))
        return out

    def loadFromModFolder(
        self,
        typeTag: str,
        resourceKey: ResourceKey | str,
        options: ImportOptions | Mapping[str, Any] | None = None,
        *,
        resourcePath: str | None = None,
    ) -> BuiltResource:
        """Import one resource from its canonical mod folder."""
        porter = self.porterFor(typeTag)
        key = parseKey(resourceKey) if isinstance(resourceKey, str) else resourceKey
        folder = porter.locateFolder(key, resourcePath=resourcePath)
        if not folder.is_dir():
            raise ResourceNotFoundError(key.composite, typeTag)

        wire = {
            **_wireOptions(ImportOptions.coerce(options)),
            NAME_OPTION: key.resourceName,
            RECURSIVE_OPTION: False,
        }
        if key.packageName is not None:
            wire[PACKAGE_NAME_OPTION] = key.packageName
        report = self.importFiles(typeTag, [folder], wire)
        if report.resources:
            return report.resources[0]
        if report.failures:
            raise report.failures[0].error
        raise ResourceNotFoundError(key.composite, typeTag)

    def tryFindAndLoadFromModFolder(
        self,
        typeTag: str,
        resourceKey: ResourceKey | str,
        options: ImportOptions | Mapping[str, Any] | None = None,
        *,
        resourcePath: str | None = None,
    ) -> BuiltResource | None:
        porter = self.porterFor(typeTag)
        key = parseKey(resourceKey) if isinstance(resourceKey, str) else resourceKey
        if not porter.locateFolder(key, resourcePath=resourcePath).is_dir():
            return None
        return self.loadFromModFolder(typeTag, key, options, resourcePath=resourcePath)

    def serializeToModFolder(self, resource: BuiltResource) -> list[Path]:
        return self.porterFor(resource.typeTag).serializeToModFolder(resource)



def _tagOf(modelType: type[BaseModel] | str) -> str:
    return modelType if isinstance(modelType, str) else modelType.__name__



def _wireOptions(options: ImportOptions) -> dict[str, Any]:
    """Options back in their flat wire form, keeping only what the caller set."""
    return options.model_dump(by_alias=True, exclude_unset=True)
