# tests/modporter/porting/test_model_porter.py
from __future__ import annotations
import json
from pathlib import Path

import pytest
from pydantic import BaseModel

from modporter.core.errors import ResourceNotFoundError
from modporter.porting.context import ModPorterContext
from modporter.porting.model_porter import ModelPorter


class Character(BaseModel):
    key: str
    name: str
    level: int = 1


@pytest.fixture()
def characters(context: ModPorterContext) -> ModelPorter[Character]:
    porter: ModelPorter[Character] = ModelPorter(Character, subFolderName="Characters")
    context.registerPorter(porter)
    return porter


def test_save_writesDataFileAndClearsLooseFiles(context: ModPorterContext, characters: ModelPorter[Character], makeFile) -> None:
    folder = context.dataRoot / "Characters" / "hero-1"
    stale = makeFile(folder / "stale.txt")
    kept = makeFile(folder / "_notes.txt")

    metadata = characters.save(Character(key="hero-1", name="Aria", level=3))

    assert metadata.key == "hero-1"
    assert metadata.mainDataFileName == "Aria.data.json"
    assert json.loads(metadata.mainDataFileLocation.read_text(encoding="utf-8")) == {"key": "hero-1", "name": "Aria", "level": 3}
    assert not stale.exists()
    assert kept.exists()


def test_loadByKey_roundTripsModel(characters: ModelPorter[Character]) -> None:
    characters.save(Character(key="hero-1", name="Aria", level=3))

    assert characters.loadByKey("hero-1") == Character(key="hero-1", name="Aria", level=3)
    assert characters.tryLoadByKey("nobody") is None
    with pytest.raises(ResourceNotFoundError):
        characters.loadByKey("nobody")


def test_listMetadata_skipsFoldersWithoutDataFile(context: ModPorterContext, characters: ModelPorter[Character], makeFile) -> None:
    characters.save(Character(key="b", name="Bram"))
    characters.save(Character(key="a", name="Aria"))
    makeFile(context.dataRoot / "Characters" / "empty" / "readme.txt")
    makeFile(context.dataRoot / "Characters" / "a" / "portrait.png")

    listed = characters.listMetadata()

    assert [metadata.key for metadata in listed] == ["a", "b"]
    assert listed[0].icon is not None and listed[0].icon.name == "portrait.png"
    assert listed[1].model.name == "Bram"


def test_import_folderConfigAndDataFile(context: ModPorterContext, characters: ModelPorter[Character], makeFile) -> None:
    inbox = context.inboxRoot / "Acme" / "Characters"
    config = makeFile(inbox / "Mira" / "_config.json", '{"level": 7}')
    dataFile = makeFile(inbox / "bran.data.json", '{"key": "bran", "name": "Bran"}')

    report = context.importFiles("Character", [config.parent, dataFile])

    byKey = {resource.resourceKey: resource for resource in report.resources}
    assert set(byKey) == {"Acme::Mira", "Acme::Bran"}
    assert byKey["Acme::Mira"].payload == Character(key="Mira", name="Mira", level=7)
    assert byKey["Acme::Bran"].payload == Character(key="bran", name="Bran")
    assert report.ok


def test_serializeToModFolder_writesDataFile(context: ModPorterContext, characters: ModelPorter[Character], makeFile) -> None:
    config = makeFile(context.inboxRoot / "Acme" / "Characters" / "Mira" / "_config.json", '{"level": 2}')
    resource = context.importFiles("Character", [config.parent]).resources[0]

    written = context.serializeToModFolder(resource)

    assert written == [context.modsRoot / "Acme" / "Characters" / "Mira" / "Mira.data.json"]
    assert json.loads(written[0].read_text(encoding="utf-8"))["level"] == 2


def test_modelPorterLookup_byClassOrTag(context: ModPorterContext, characters: ModelPorter[Character]) -> None:
    assert context.getModelPorter(Character) is characters
    assert context.getModelPorter("Character") is characters
    assert context.tryGetArchetypePorter("Character") is None


def test_saveRootFolder_isUnderDataRoot(context: ModPorterContext, characters: ModelPorter[Character]) -> None:
    assert characters.saveRootFolder() == context.dataRoot / "Characters"
    assert isinstance(characters.saveRootFolder(), Path)


def test_import_leavesNonDataFilesUnconsumed(context: ModPorterContext, characters: ModelPorter[Character], makeFile) -> None:
    notes = makeFile(context.inboxRoot / "Acme" / "Characters" / "notes.txt")

    report = context.importFiles("Character", [notes])

    assert report.resources == []
    assert report.consumedFiles == []
    assert report.ok
