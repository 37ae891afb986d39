# modporter/porting/model_porter.py
from __future__ import annotations
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import ClassVar, Generic, TypeVar

from pydantic import BaseModel

from modporter.core.errors import ResourceNotFoundError
from modporter.core.jsonutils import readJsonFile, writeJsonFile
from .constants import MODEL_DATA_EXTENSION, isIgnoredName
from .porter import Porter
from .resolver import stemOf
from .resources import AssetBuildRequest, BuiltResource, ConfigBuildRequest, PortResult

logger = logging.getLogger(__name__)

__all__ = ["ModelPorter", "ModelMetadata"]

M = TypeVar("M", bound=BaseModel)

_ICON_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp")



def isModelDataFile(path: Path) -> bool:
    return path.name.lower().endswith(MODEL_DATA_EXTENSION)



def _visibleFiles(folder: Path) -> list[Path]:
    return sorted(child for child in folder.iterdir() if child.is_file() and not isIgnoredName(child.name))



@dataclass
class ModelMetadata(Generic[M]):
    """What can be skimmed from a saved model folder without parsing the data file."""
    name: str
    folder: Path
    lastUpdated: datetime
    icon: Path | None = None
    _loader: Callable[[Path], M] | None = field(default=None, repr=False)
    _model: M | None = field(default=None, init=False, repr=False)

    @property
    def key(self) -> str:
        return self.folder.name

    @property
    def mainDataFileName(self) -> str:
        return f"{self.name}{MODEL_DATA_EXTENSION}"

    @property
    def mainDataFileLocation(self) -> Path:
        return self.folder / self.mainDataFileName

    @property
    def model(self) -> M:
        """Loaded on first access; prefers <name>.data.json, else the first data file in the folder."""
        if self._model is None:
            if self._loader is None:
                raise RuntimeError(f"No loader attached to metadata for '{self.key}'")
            dataFile = self.mainDataFileLocation
            if not dataFile.is_file():
                others = [file for file in _visibleFiles(self.folder) if isModelDataFile(file)]
                if not others:
                    raise ResourceNotFoundError(self.key)
                dataFile = others[0]
            self._model = self._loader(dataFile)
        return self._model



class ModelPorter(Porter, Generic[M]):
    """
    Porter for pydantic models.

    Saved models live in dataRoot/<subFolderName>/<key>/<name>.data.json;
    imported ones follow the usual mod layout.
    """

    flavour: ClassVar[str] = "model"
    modelType: type[M]
    # Attribute names read off a model to pick its folder and its data file name
    keyField: ClassVar[str] = "key"
    nameField: ClassVar[str] = "name"

    def __init__(
        self,
        modelType: type[M] | None = None,
        *,
        baseType: str | None = None,
        subFolderName: str | None = None,
    ) -> None:
        if modelType is not None:
            self.modelType = modelType
        if getattr(self, "modelType", None) is None:
            raise TypeError(f"{type(self).__name__} needs a modelType")
        super().__init__(baseType=baseType or getattr(self, "baseType", None) or self.modelType.__name__, subFolderName=subFolderName)

    # ----- Saving -----

    def saveRootFolder(self) -> Path:
        return self.context.dataRoot / self.subFolderName

    def keyOf(self, model: M) -> str:
        return str(getattr(model, self.keyField, None) or getattr(model, self.nameField))

    def nameOf(self, model: M) -> str:
        return str(getattr(model, self.nameField, None) or self.keyOf(model))

    def saveFolderFor(self, model: M) -> Path:
        return self.saveRootFolder() / self.keyOf(model)

    def save(self, model: M) -> ModelMetadata[M]:
        """Overwrites the model's data file; loose files in its folder are cleared, sub folders are left alone."""
        folder = self.saveFolderFor(model)
        if folder.is_dir():
            for file in _visibleFiles(folder):
                file.unlink()
        else:
            folder.mkdir(parents=True, exist_ok=True)

        metadata = self.makeMetadata(self.nameOf(model), folder, datetime.now())
        writeJsonFile(metadata.mainDataFileLocation, model.model_dump(mode="json"))
        self.saveExtraDataFiles(model, folder)
        self.logger.info("Saved %s '%s' to '%s'", self.baseType, metadata.key, folder)
        return metadata

    def saveExtraDataFiles(self, model: M, folder: Path) -> None:
        """Hook for kinds that store more than the main data file."""
        pass

    # ----- Loading -----

    def loadFromDataFile(self, dataFile: Path) -> M:
        return self.modelType.model_validate(readJsonFile(dataFile))

    def tryLoadByKey(self, key: str) -> M | None:
        folder = self.saveRootFolder() / key
        if not folder.is_dir():
            return None
        for file in _visibleFiles(folder):
            if isModelDataFile(file):
                return self.loadFromDataFile(file)
        return None

    def loadByKey(self, key: str) -> M:
        model = self.tryLoadByKey(key)
        if model is None:
            raise ResourceNotFoundError(key, self.baseType)
        return model

    def listMetadata(self) -> list[ModelMetadata[M]]:
        root = self.saveRootFolder()
        if not root.is_dir():
            return []
        out: list[ModelMetadata[M]] = []
        for folder in sorted(child for child in root.iterdir() if child.is_dir()):
            metadata = self.loadMetadataFromFolder(folder)
            if metadata is not None:
                out.append(metadata)
        return out

    def loadMetadataFromFolder(self, folder: Path) -> ModelMetadata[M] | None:
        dataFile: Path | None = None
        icon: Path | None = None
        for file in _visibleFiles(folder):
            if dataFile is None and isModelDataFile(file):
                dataFile = file
            elif icon is None and file.suffix.lower() in _ICON_SUFFIXES:
                icon = file
            if dataFile is not None and icon is not None:
                break
        if dataFile is None:
            return None
        lastUpdated = datetime.fromtimestamp(folder.stat().st_mtime)
        return self.makeMetadata(stemOf(dataFile), folder, lastUpdated, icon)

    def makeMetadata(self, name: str, folder: Path, lastUpdated: datetime, icon: Path | None = None) -> ModelMetadata[M]:
        return ModelMetadata(name=name, folder=folder, lastUpdated=lastUpdated, icon=icon, _loader=self.loadFromDataFile)

    # ----- Import / export -----

    def buildFromConfig(self, request: ConfigBuildRequest) -> PortResult:
        identity = request.identify(request.configPath, config=request.config)
        data = request.config.body()
        fields = self.modelType.model_fields
        if self.nameField in fields:
            data.setdefault(self.nameField, identity.resourceName)
        if self.keyField in fields:
            data.setdefault(self.keyField, identity.resourceName)
        model = self.modelType.model_validate(data)
        resource = BuiltResource(
            typeTag=self.baseType,
            key=identity.key,
            resourcePath=identity.resourcePath,
            sourceFiles=(request.configPath,),
            description=request.config.description,
            tags=tuple(request.config.tags),
            payload=model,
        )
        return PortResult(resources=[resource], consumedFiles=[request.configPath])

    def buildFromLooseAssets(self, request: AssetBuildRequest) -> PortResult:
        if not request.candidateAssets or not isModelDataFile(request.candidateAssets[0]):
            return PortResult()
        dataFile = request.candidateAssets[0]
        identity = request.identify(dataFile)
        resource = BuiltResource(
            typeTag=self.baseType,
            key=identity.key,
            resourcePath=identity.resourcePath,
            sourceFiles=(dataFile,),
            payload=self.loadFromDataFile(dataFile),
        )
        return PortResult(resources=[resource], consumedFiles=[dataFile])

    def serializeToFiles(self, resource: BuiltResource, destinationFolder: Path) -> list[Path]:
        model = resource.payload
        if not isinstance(model, BaseModel):
            raise TypeError(f"{resource!r} does not carry a pydantic model")
        target = destinationFolder / f"{resource.name}{MODEL_DATA_EXTENSION}"
        return [writeJsonFile(target, model.model_dump(mode="json"))]
