# tests/modporter/porting/test_archiver.py
from __future__ import annotations
import json
from pathlib import Path

import pytest

from modporter.core.errors import ArchiveIncompleteError, UnsafeDeletionError
from modporter.porting.archiver import FinishedImportArchiver
from modporter.porting.asset_porter import AssetArchetypePorter
from modporter.porting.context import ModPorterContext


@pytest.fixture()
def weapons(context: ModPorterContext) -> AssetArchetypePorter:
    porter = AssetArchetypePorter(baseType="Weapon", subFolderName="Weapons")
    context.registerPorter(porter)
    return porter


def test_swordFromInbox_isPublishedAndArchived(context: ModPorterContext, weapons: AssetArchetypePorter, makeFile) -> None:
    inbox = context.inboxRoot / "Acme" / "Weapons"
    config = makeFile(inbox / "_config.json", '{"name": "Sword", "tags": ["blade"]}')
    image = makeFile(inbox / "sword.png", "pixels")

    report = context.importFiles("Weapon", [config, image], {"MoveImportedFilesToFinished": True})

    assert report.ok
    assert [resource.resourceKey for resource in report.resources] == ["Acme::Sword"]

    # Originals left the inbox, and their emptied folders went with them
    assert not config.exists() and not image.exists()
    assert not (context.inboxRoot / "Acme").exists()
    assert context.inboxRoot.is_dir()

    published = context.modsRoot / "Acme" / "Weapons" / "Sword"
    normalized = json.loads((published / "_config.json").read_text(encoding="utf-8"))
    assert normalized["name"] == "Sword"
    assert normalized["packageName"] == "Acme"
    assert normalized["tags"] == ["blade"]
    assert normalized["assets"] == ["sword.png"]
    assert (published / "sword.png").read_text(encoding="utf-8") == "pixels"

    processed = context.settings.processedRoot / "Acme" / "Weapons"
    assert (processed / "_config.json").is_file()
    assert (processed / "sword.png").is_file()

    assert context.getResources("Weapon", "Acme::Sword") == report.resources


def test_importFromInbox_movesByDefault(context: ModPorterContext, weapons: AssetArchetypePorter, makeFile) -> None:
    image = makeFile(context.inboxRoot / "Acme" / "Weapons" / "axe.png")

    report = context.importFromInbox("Weapon")

    assert [resource.resourceKey for resource in report.resources] == ["Acme::axe"]
    assert report.archived is not None
    assert not image.exists()
    assert (context.modsRoot / "Acme" / "Weapons" / "axe" / "axe.png").is_file()


def test_externalFiles_goUnderTheirPackageAndNeverPrune(context: ModPorterContext, weapons: AssetArchetypePorter, makeFile, tmp_path: Path) -> None:
    drop = tmp_path / "downloads"
    image = makeFile(drop / "bow.png")

    report = context.importFiles("Weapon", [image], {"MoveImportedFilesToFinished": True, "PackageName": "Acme"})

    assert report.ok
    assert (context.settings.processedRoot / "Acme" / "bow.png").is_file()
    assert drop.is_dir()


def test_nameCollisionInProcessedFolder_getsSuffix(context: ModPorterContext, weapons: AssetArchetypePorter, makeFile) -> None:
    makeFile(context.settings.processedRoot / "Acme" / "Weapons" / "axe.png", "old")
    makeFile(context.inboxRoot / "Acme" / "Weapons" / "axe.png", "new")

    context.importFromInbox("Weapon")

    assert (context.settings.processedRoot / "Acme" / "Weapons" / "axe (1).png").read_text(encoding="utf-8") == "new"


def test_pruneEmptyParents_refusesToDeleteInbox(context: ModPorterContext) -> None:
    context.inboxRoot.mkdir(parents=True)
    archiver = FinishedImportArchiver(context)

    with pytest.raises(UnsafeDeletionError):
        archiver.pruneEmptyParents(context.inboxRoot, context.settings.rootDataFolder)
    assert context.inboxRoot.is_dir()


def test_pruneEmptyParents_stopsBelowBoundary(context: ModPorterContext) -> None:
    leaf = context.inboxRoot / "Acme" / "Weapons" / "Sword"
    leaf.mkdir(parents=True)
    archiver = FinishedImportArchiver(context)

    pruned = archiver.pruneEmptyParents(leaf, context.inboxRoot)

    assert len(pruned) == 3
    assert not (context.inboxRoot / "Acme").exists()
    assert context.inboxRoot.is_dir()


def test_pruneEmptyParents_keepsNonEmptyFolders(context: ModPorterContext, makeFile) -> None:
    keep = makeFile(context.inboxRoot / "Acme" / "keep.txt")
    leaf = context.inboxRoot / "Acme" / "Weapons"
    leaf.mkdir(parents=True)

    pruned = FinishedImportArchiver(context).pruneEmptyParents(leaf, context.inboxRoot)

    assert [path.name for path in pruned] == ["Weapons"]
    assert keep.is_file()


def test_moveFailure_raisesArchiveIncomplete(context: ModPorterContext, weapons: AssetArchetypePorter, makeFile, monkeypatch: pytest.MonkeyPatch) -> None:
    first = makeFile(context.inboxRoot / "Acme" / "Weapons" / "a.png")
    second = makeFile(context.inboxRoot / "Acme" / "Weapons" / "b.png")
    calls: list[str] = []

    import shutil
    realMove = shutil.move

    def flakyMove(source: str, destination: str):
        calls.append(source)
        if len(calls) == 2:
            raise PermissionError("locked")
        return realMove(source, destination)

    monkeypatch.setattr("modporter.porting.archiver.shutil.move", flakyMove)

    with pytest.raises(ArchiveIncompleteError) as info:
        FinishedImportArchiver(context).archive([], [first, second])

    assert info.value.moved == [first]
    assert info.value.pending == [second]
    assert second.exists()


def test_pipeline_recordsArchiveFailureWithoutLosingResources(context: ModPorterContext, weapons: AssetArchetypePorter, makeFile, monkeypatch: pytest.MonkeyPatch) -> None:
    makeFile(context.inboxRoot / "Acme" / "Weapons" / "a.png")

    def brokenMove(source: str, destination: str):
        raise PermissionError("locked")

    monkeypatch.setattr("modporter.porting.archiver.shutil.move", brokenMove)

    report = context.importFromInbox("Weapon")

    assert isinstance(report.archiveError, ArchiveIncompleteError)
    assert [resource.resourceKey for resource in report.resources] == ["Acme::a"]
    assert not report.ok


def test_serializeFailure_isReportedAndLeavesSourcesInPlace(context: ModPorterContext, weapons: AssetArchetypePorter, makeFile) -> None:
    inbox = context.inboxRoot / "Acme" / "Weapons"
    config = makeFile(inbox / "_config.json", '{"name": "Sword"}')
    image = makeFile(inbox / "sword.png")
    # A plain file where the resource folder should go
    makeFile(context.modsRoot / "Acme" / "Weapons" / "Sword", "in the way")

    report = context.importFiles("Weapon", [config, image], {"MoveImportedFilesToFinished": True})

    assert isinstance(report.archiveError, ArchiveIncompleteError)
    assert report.archiveError.moved == []
    assert set(report.archiveError.pending) == {config, image}
    assert isinstance(report.archiveError.cause, OSError)
    assert report.archived is None
    assert not report.ok
    assert [resource.resourceKey for resource in report.resources] == ["Acme::Sword"]
    assert config.is_file() and image.is_file()


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("my.file.v2.png", "my.file.v2 (1).png"),
        ("hero.data.json", "hero (1).data.json"),
        ("README", "README (1)"),
    ],
)
def test_uniqueDestination_keepsOnlyTheRealExtension(tmp_path: Path, makeFile, name: str, expected: str) -> None:
    taken = makeFile(tmp_path / name)

    assert FinishedImportArchiver._uniqueDestination(taken) == tmp_path / expected
