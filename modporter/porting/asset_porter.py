# modporter/porting/asset_porter.py
from __future__ import annotations
import shutil
from pathlib import Path
from typing import ClassVar

from modporter.core.errors import MissingFieldError
from modporter.core.jsonutils import writeJsonFile
from .constants import CONFIG_FILE_NAME
from .porter import ArchetypePorter
from .resources import AssetArchetype, AssetBuildRequest, BuiltResource, ConfigBuildRequest, PortResult

__all__ = ["AssetArchetypePorter", "ASSETS_CONFIG_KEY"]

# Optional config key listing the asset files (names relative to the config's folder)
ASSETS_CONFIG_KEY = "assets"



class AssetArchetypePorter(ArchetypePorter):
    """
    General purpose porter: one config plus any number of asset files.

        With a config: the config and its assets (the "assets" list, or every
                       candidate next to the config) become one resource.
        Loose:         each asset becomes its own resource, except inside a
                       single-resource folder where all files form one.
    """

    baseType = "Asset"
    subFolderName = "Assets"
    validConfigKeys: ClassVar[frozenset[str]] = ArchetypePorter.validConfigKeys | {ASSETS_CONFIG_KEY}

    def buildFromConfig(self, request: ConfigBuildRequest) -> PortResult:
        identity = request.identify(request.configPath, config=request.config)
        assets = self._assetsFor(request)

        resource = self.makeResource(
            identity,
            [request.configPath, *assets],
            factory=AssetArchetype,
            description=request.config.description,
            tags=tuple(request.config.tags),
            payload=request.config.body(),
            primaryAsset=assets[0] if assets else None,
            assetFiles=tuple(assets),
            config=request.config,
        )
        self.logger.debug("Built '%s' from config '%s' with %d asset(s)", identity.resourceKey, request.configPath.name, len(assets))
        return PortResult(resources=[resource], consumedFiles=[request.configPath, *assets])

    def _assetsFor(self, request: ConfigBuildRequest) -> list[Path]:
        folder = request.configPath.parent
        named = request.config.get(ASSETS_CONFIG_KEY)
        if named is None:
            return [asset for asset in request.candidateAssets if asset.parent == folder]

        if isinstance(named, str) or not isinstance(named, list):
            raise MissingFieldError(ASSETS_CONFIG_KEY, f"'{ASSETS_CONFIG_KEY}' in '{request.configPath}' must be a list of file names")
        byRelative = {asset.relative_to(folder).as_posix(): asset for asset in request.candidateAssets if asset.is_relative_to(folder)}
        out: list[Path] = []
        for entry in named:
            asset = byRelative.get(str(entry).replace("\\", "/"))
            if asset is None:
                raise MissingFieldError(ASSETS_CONFIG_KEY, f"Asset '{entry}' listed in '{request.configPath}' was not found")
            out.append(asset)
        return out

    def buildFromLooseAssets(self, request: AssetBuildRequest) -> PortResult:
        if not request.candidateAssets:
            return PortResult()
        primary = request.candidateAssets[0]
        # A single-resource folder is one resource; otherwise each file stands alone
        assets = list(request.candidateAssets) if request.fromSingleResourceFolder else [primary]
        identity = request.identify(primary)
        resource = self.makeResource(identity, assets, factory=AssetArchetype, primaryAsset=primary, assetFiles=tuple(assets))
        return PortResult(resources=[resource], consumedFiles=assets)

    def serializeToFiles(self, resource: BuiltResource, destinationFolder: Path) -> list[Path]:
        destinationFolder.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        assetNames: list[str] = []

        assets = resource.assetFiles if isinstance(resource, AssetArchetype) else ()
        for asset in assets:
            target = destinationFolder / asset.name
            if asset.exists() and asset.resolve() != target.resolve():
                shutil.copy2(asset, target)
            written.append(target)
            assetNames.append(asset.name)

        body = dict(resource.payload) if isinstance(resource.payload, dict) else {}
        body.pop(ASSETS_CONFIG_KEY, None)
        config = {
            "name": resource.name,
            "packageName": resource.packageKey,
            "description": resource.description,
            "tags": list(resource.tags),
            ASSETS_CONFIG_KEY: assetNames,
            **body,
        }
        written.append(writeJsonFile(destinationFolder / CONFIG_FILE_NAME, {key: value for key, value in config.items() if value is not None}))
        return written
