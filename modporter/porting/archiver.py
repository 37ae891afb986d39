# modporter/porting/archiver.py
from __future__ import annotations
import logging
import os
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from modporter.core.errors import ArchiveIncompleteError, ReactorScramError, UnsafeDeletionError
from .constants import MODEL_DATA_EXTENSION
from .resources import BuiltResource

if TYPE_CHECKING:
    from .context import ModPorterContext

logger = logging.getLogger(__name__)

__all__ = ["FinishedImportArchiver", "ArchiveResult"]



def _absolute(path: Path) -> Path:
    return Path(os.path.abspath(path))



def _isUnder(path: Path, folder: Path) -> bool:
    """True when path is folder itself or anything below it."""
    try:
        return os.path.commonpath([_absolute(path), _absolute(folder)]) == str(_absolute(folder))
    except ValueError:
        return False



@dataclass
class ArchiveResult:
    serialized: list[Path] = field(default_factory=list)
    # (source, destination) pairs, in move order
    moved: list[tuple[Path, Path]] = field(default_factory=list)
    pruned: list[Path] = field(default_factory=list)
    # Consumed files that are also serialized outputs and therefore stay put
    kept: list[Path] = field(default_factory=list)



class FinishedImportArchiver:
    """
    Writes freshly imported resources to their canonical mod folders, then moves
    the source files into mods/__processed_imports and removes folders left empty.

    Layout of moved files:
        mods/__imports/<pkg>/a/b.png  ->  mods/__processed_imports/<pkg>/a/b.png
        mods/<pkg>/a/b.png            ->  mods/__processed_imports/<pkg>/a/b.png
        /elsewhere/b.png              ->  mods/__processed_imports/<pkg>/b.png
    """

    def __init__(self, context: ModPorterContext):
        self.context = context

    @property
    def protectedFolders(self) -> tuple[Path, ...]:
        settings = self.context.settings
        return (
            _absolute(settings.inboxRoot),
            _absolute(settings.modsRoot),
            _absolute(settings.processedRoot),
        )

    def archive(self, resources: Iterable[BuiltResource], consumedFiles: Iterable[Path]) -> ArchiveResult:
        resources = list(resources)
        consumedFiles = [_absolute(path) for path in consumedFiles]
        result = ArchiveResult()

        for resource in resources:
            porter = self.context.porterFor(resource.typeTag)
            try:
                written = porter.serializeToModFolder(resource)
            except ReactorScramError:
                raise
            except Exception as err:
                # Nothing has been moved yet; every consumed file stays where it is
                logger.error("Could not write %s to its mod folder: %s", resource.resourceKey, err)
                raise ArchiveIncompleteError([], consumedFiles, err) from err
            result.serialized.extend(_absolute(path) for path in written)
        serialized = set(result.serialized)

        packageBySource: dict[Path, str] = {}
        for resource in resources:
            for source in resource.sourceFiles:
                if resource.packageKey:
                    packageBySource.setdefault(_absolute(source), resource.packageKey)

        pending = list(consumedFiles)
        while pending:
            source = pending[0]
            if source in serialized:
                result.kept.append(source)
                pending.pop(0)
                continue
            if not source.exists():
                logger.debug("Consumed file '%s' no longer exists; nothing to archive", source)
                pending.pop(0)
                continue
            try:
                destination = self._uniqueDestination(self.destinationFor(source, packageBySource.get(source)))
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(source), str(destination))
            except OSError as err:
                raise ArchiveIncompleteError([moved for moved, _ in result.moved], pending, err) from err
            result.moved.append((source, destination))
            pending.pop(0)

        for source, _ in result.moved:
            stopAt = self._pruneBoundaryFor(source)
            if stopAt is None:
                continue
            result.pruned.extend(
                self.pruneEmptyParents(source.parent, stopAt, moved=[moved for moved, _ in result.moved])
            )

        logger.info(
            "Archived %d file(s), serialized %d file(s), pruned %d folder(s)",
            len(result.moved), len(result.serialized), len(result.pruned),
        )
        return result

    # ----- Layout -----

    def destinationFor(self, source: Path, packageName: str | None = None) -> Path:
        settings = self.context.settings
        processedRoot = _absolute(settings.processedRoot)
        source = _absolute(source)
        for root in (settings.inboxRoot, settings.modsRoot):
            if _isUnder(source, root) and source != _absolute(root):
                return processedRoot / source.relative_to(_absolute(root))
        return processedRoot / (packageName or self.context.resolver.defaultPackageName()) / source.name

    @staticmethod
    def _uniqueDestination(destination: Path) -> Path:
        if not destination.exists():
            return destination
        name = destination.name
        suffix = name[-len(MODEL_DATA_EXTENSION):] if name.lower().endswith(MODEL_DATA_EXTENSION) else destination.suffix
        stem = name[: -len(suffix)] if suffix else name
        counter = 1
        while True:
            candidate = destination.with_name(f"{stem} ({counter}){suffix}")
            if not candidate.exists():
                return candidate
            counter += 1

    def _pruneBoundaryFor(self, source: Path) -> Path | None:
        settings = self.context.settings
        if _isUnder(source, settings.inboxRoot):
            return _absolute(settings.inboxRoot)
        if _isUnder(source, settings.processedRoot):
            return None
        if _isUnder(source, settings.modsRoot):
            return _absolute(settings.modsRoot)
        return None

    # ----- Pruning -----

    def pruneEmptyParents(self, start: Path, stopAt: Path, *, moved: Iterable[Path] = ()) -> list[Path]:
        """
        Remove `start` and its ancestors while they are empty, never touching
        `stopAt` or anything above it. Reaching for a protected root raises
        UnsafeDeletionError.
        """
        start, stopAt = _absolute(start), _absolute(stopAt)
        pruned: list[Path] = []
        current = start
        while current != stopAt and _isUnder(current, stopAt):
            if not current.is_dir() or any(current.iterdir()):
                break
            if current in self.protectedFolders:
                raise UnsafeDeletionError(current, moved)
            current.rmdir()
            pruned.append(current)
            current = current.parent
        return pruned
