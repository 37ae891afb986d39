# modporter/porting/resources.py
from __future__ import annotations
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from modporter.core.jsonutils import serializeError
from .keys import ResourceKey
from .options import ImportOptions, ResourceConfig

if TYPE_CHECKING:
    from .resolver import ResolvedIdentity

__all__ = [
    "BuiltResource",
    "AssetArchetype",
    "PortResult",
    "ConfigBuildRequest",
    "AssetBuildRequest",
    "ImportFailure",
    "ImportPhase",
]



ImportPhase = Literal["classify", "config", "directory", "loose", "register", "archive"]

# identify(primaryFile, config=None) -> ResolvedIdentity; options and porter are already bound
IdentifyFn = Callable[..., "ResolvedIdentity"]



@dataclass(eq=False, kw_only=True)
class BuiltResource:
    """
    One constructed domain object owned by exactly one package slot.

    Equality is identity: two separately built resources with the same key are
    different objects and may share a slot.
    """
    typeTag: str
    key: ResourceKey
    # Folder-derived path ("Blades/Sword") used for on-disk layout; defaults to the leaf name
    resourcePath: str | None = None
    sourceFiles: tuple[Path, ...] = ()
    description: str | None = None
    tags: tuple[str, ...] = ()
    payload: Any = None

    @property
    def resourceKey(self) -> str:
        return self.key.composite

    @property
    def packageKey(self) -> str | None:
        return self.key.packageName

    @property
    def name(self) -> str:
        return self.key.resourceName

    @property
    def layoutPath(self) -> str:
        return self.resourcePath or self.key.resourceName

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.typeTag!r}, {self.resourceKey!r})"



@dataclass(eq=False, kw_only=True)
class AssetArchetype(BuiltResource):
    """Archetype made from a config and/or a set of asset files."""
    primaryAsset: Path | None = None
    assetFiles: tuple[Path, ...] = ()
    config: ResourceConfig | None = None



@dataclass
class PortResult:
    resources: list[BuiltResource] = field(default_factory=list)
    consumedFiles: list[Path] = field(default_factory=list)



@dataclass
class ConfigBuildRequest:
    configPath: Path
    config: ResourceConfig
    candidateAssets: list[Path]
    options: ImportOptions
    # Porter-declared extra option values
    extras: dict[str, Any]
    fromSingleResourceFolder: bool
    identify: IdentifyFn



@dataclass
class AssetBuildRequest:
    candidateAssets: list[Path]
    options: ImportOptions
    extras: dict[str, Any]
    fromSingleResourceFolder: bool
    identify: IdentifyFn



@dataclass
class ImportFailure:
    """A single candidate that could not be built; siblings keep going."""
    phase: ImportPhase
    files: tuple[Path, ...]
    error: BaseException

    def toDict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "files": [file.as_posix() for file in self.files],
            "error": serializeError(self.error),
        }
