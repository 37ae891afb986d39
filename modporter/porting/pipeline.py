# modporter/porting/pipeline.py
from __future__ import annotations
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

from modporter.core.cancel import CancelToken
from modporter.core.errors import (
    ArchiveIncompleteError,
    ImportCancelledError,
    ReactorScramError,
    UnsafeDeletionError,
)
from modporter.core.ids import uuidv7
from modporter.core.jsonutils import serializeError
from modporter.core.logging import clearLogContext, setLogContext
from .archiver import ArchiveResult, FinishedImportArchiver
from .constants import CONFIG_EXTENSION, CONFIG_FILE_NAME, isIgnoredName
from .options import ImportOptions, readConfig
from .porter import Porter
from .resources import AssetBuildRequest, BuiltResource, ConfigBuildRequest, ImportFailure, ImportPhase, PortResult

if TYPE_CHECKING:
    from .context import ModPorterContext

logger = logging.getLogger(__name__)

__all__ = ["ImportPipeline", "ImportReport"]



def _byNameThenByFolder(path: Path) -> tuple[str, str]:
    return (path.name, str(path))



def _isConfig(path: Path) -> bool:
    return path.suffix.lower() == CONFIG_EXTENSION



@dataclass
class ImportReport:
    runId: str
    typeTag: str
    resources: list[BuiltResource] = field(default_factory=list)
    # Ordered, each file at most once
    consumedFiles: list[Path] = field(default_factory=list)
    consumedByPhase: dict[str, list[Path]] = field(default_factory=dict)
    failures: list[ImportFailure] = field(default_factory=list)
    ignored: list[Path] = field(default_factory=list)
    archived: ArchiveResult | None = None
    archiveError: BaseException | None = None

    @property
    def ok(self) -> bool:
        return not self.failures and self.archiveError is None

    def toDict(self) -> dict[str, Any]:
        return {
            "runId": self.runId,
            "typeTag": self.typeTag,
            "resources": [resource.resourceKey for resource in self.resources],
            "consumedFiles": [path.as_posix() for path in self.consumedFiles],
            "failures": [failure.toDict() for failure in self.failures],
            "ignored": [path.as_posix() for path in self.ignored],
            "archived": len(self.archived.moved) if self.archived else 0,
            "archiveError": serializeError(self.archiveError) if self.archiveError else None,
        }



@dataclass
class _RunState:
    porter: Porter
    options: ImportOptions
    extras: dict[str, Any]
    recursive: bool
    report: ImportReport
    configs: list[Path] = field(default_factory=list)
    assets: list[Path] = field(default_factory=list)
    directories: list[Path] = field(default_factory=list)
    consumed: set[Path] = field(default_factory=set)



class ImportPipeline:
    """
    Turns a batch of files and folders into resources for one porter.

    classify -> config pass -> directory pass -> loose pass -> register -> (archive)

    A candidate that fails is recorded in the report and the rest of the batch
    keeps going. Cancellation is honoured between phases.
    """

    def __init__(self, context: ModPorterContext):
        self.context = context

    def run(
        self,
        typeTag: str,
        paths: Iterable[Path | str],
        options: ImportOptions | Mapping[str, Any] | None = None,
        *,
        cancel: CancelToken | None = None,
    ) -> ImportReport:
        porter = self.context.porterFor(typeTag)
        options = ImportOptions.coerce(options)
        recursive = options.recursive if options.recursive is not None else self.context.settings.recursiveFolderImport
        report = ImportReport(runId=uuidv7(prefix="import-"), typeTag=typeTag)
        state = _RunState(
            porter=porter,
            options=options,
            extras=options.extrasFor(porter.validOptionKeys),
            recursive=recursive,
            report=report,
        )

        setLogContext(runId=report.runId, porter=porter.subFolderName)
        try:
            self._phase(state, "classify", cancel)
            self._classify(state, paths)

            self._phase(state, "config", cancel)
            self._configPass(state)

            self._phase(state, "directory", cancel)
            self._directoryPass(state)

            self._phase(state, "loose", cancel)
            self._loosePass(state)

            self._phase(state, "register", cancel)
            self._register(state)

            if options.moveImportedFilesToFinished:
                self._phase(state, "archive", cancel)
                self._archive(state)

            logger.info(
                "Imported %d %s resource(s) from %d file(s); %d failure(s)",
                len(report.resources), typeTag, len(report.consumedFiles), len(report.failures),
            )
            return report
        finally:
            clearLogContext()

    # ----- Bookkeeping -----

    def _phase(self, state: _RunState, phase: ImportPhase, cancel: CancelToken | None) -> None:
        if cancel is not None and cancel.cancelled:
            logger.info("Import cancelled before '%s' (%s)", phase, cancel.reason or "no reason given")
            raise ImportCancelledError(phase, state.report)
        setLogContext(phase=phase)

    def _consume(self, state: _RunState, phase: ImportPhase, result: PortResult, extra: Iterable[Path] = ()) -> None:
        files = [Path(os.path.abspath(path)) for path in (*extra, *result.consumedFiles)]
        for path in files:
            if path in state.consumed:
                continue
            state.consumed.add(path)
            state.report.consumedFiles.append(path)
            state.report.consumedByPhase.setdefault(phase, []).append(path)
        state.report.resources.extend(result.resources)
        state.configs = [config for config in state.configs if config not in state.consumed]
        state.assets = [asset for asset in state.assets if asset not in state.consumed]

    def _fail(self, state: _RunState, phase: ImportPhase, files: Iterable[Path], err: Exception) -> None:
        files = tuple(files)
        state.report.failures.append(ImportFailure(phase=phase, files=files, error=err))
        logger.warning(
            "Could not import %s during %s pass: %s",
            ", ".join(file.name for file in files) or "<nothing>", phase, err,
        )

    def _identify(self, state: _RunState, *, fromSingleResourceFolder: bool):
        return partial(
            self.context.resolver.resolve,
            fromSingleResourceFolder=fromSingleResourceFolder,
            options=state.options,
            subFolderName=state.porter.subFolderName,
        )

    # ----- Phases -----

    def _classify(self, state: _RunState, paths: Iterable[Path | str]) -> None:
        seen: set[Path] = set()
        for raw in paths:
            path = Path(os.path.abspath(raw))
            if path in seen:
                continue
            seen.add(path)
            if isIgnoredName(path.name):
                state.report.ignored.append(path)
            elif not path.exists():
                self._fail(state, "classify", (path,), FileNotFoundError(f"'{path}' does not exist"))
            elif path.is_dir():
                state.directories.append(path)
            elif _isConfig(path):
                state.configs.append(path)
            else:
                state.assets.append(path)

        state.configs.sort(key=_byNameThenByFolder)
        state.directories.sort(key=_byNameThenByFolder)
        logger.debug(
            "Classified %d config(s), %d asset(s), %d folder(s)",
            len(state.configs), len(state.assets), len(state.directories),
        )

    def _configPass(self, state: _RunState) -> None:
        while state.configs:
            current = state.configs[0]
            folder = current.parent
            candidates = sorted(state.assets, key=lambda asset: (asset.parent != folder, *_byNameThenByFolder(asset)))
            try:
                request = ConfigBuildRequest(
                    configPath=current,
                    config=readConfig(current),
                    candidateAssets=candidates,
                    options=state.options,
                    extras=state.extras,
                    fromSingleResourceFolder=False,
                    identify=self._identify(state, fromSingleResourceFolder=False),
                )
                result = state.porter.buildFromConfig(request)
            except ReactorScramError:
                raise
            except Exception as err:
                self._fail(state, "config", (current,), err)
                state.configs.remove(current)
                continue
            self._consume(state, "config", result, extra=(current,))

        state.directories = [folder for folder in state.directories if self._pendingFiles(state, folder)]

    def _directoryPass(self, state: _RunState) -> None:
        while state.directories:
            current = state.directories.pop(0)
            self._buildFolder(state, current)

    def _pendingFiles(self, state: _RunState, folder: Path) -> list[Path]:
        """Unconsumed, non-ignored files in folder (and below it when recursive)."""
        out: list[Path] = []
        for child in sorted(folder.iterdir(), key=_byNameThenByFolder):
            if isIgnoredName(child.name):
                continue
            if child.is_dir():
                if state.recursive:
                    out.extend(self._pendingFiles(state, child))
            elif child not in state.consumed:
                out.append(child)
        return out

    def _buildFolder(self, state: _RunState, folder: Path) -> None:
        """Treat folder as a single-resource folder; sub folders first when recursive."""
        entries = sorted((child for child in folder.iterdir() if not isIgnoredName(child.name)), key=_byNameThenByFolder)
        if state.recursive:
            for child in entries:
                if child.is_dir():
                    self._buildFolder(state, child)

        files = [child for child in entries if child.is_file() and child not in state.consumed]
        if not files:
            return

        configs = [file for file in files if _isConfig(file)]
        config = next((file for file in configs if file.name == CONFIG_FILE_NAME), configs[0] if configs else None)
        try:
            if config is not None:
                result = state.porter.buildFromConfig(ConfigBuildRequest(
                    configPath=config,
                    config=readConfig(config),
                    candidateAssets=[file for file in files if file != config],
                    options=state.options,
                    extras=state.extras,
                    fromSingleResourceFolder=True,
                    identify=self._identify(state, fromSingleResourceFolder=True),
                ))
            else:
                result = state.porter.buildFromLooseAssets(AssetBuildRequest(
                    candidateAssets=files,
                    options=state.options,
                    extras=state.extras,
                    fromSingleResourceFolder=True,
                    identify=self._identify(state, fromSingleResourceFolder=True),
                ))
        except ReactorScramError:
            raise
        except Exception as err:
            self._fail(state, "directory", (config,) if config is not None else files, err)
            return
        self._consume(state, "directory", result, extra=(config,) if config is not None else ())

    def _loosePass(self, state: _RunState) -> None:
        remaining = sorted(state.assets, key=_byNameThenByFolder)
        while remaining:
            head = remaining[0]
            try:
                result = state.porter.buildFromLooseAssets(AssetBuildRequest(
                    candidateAssets=list(remaining),
                    options=state.options,
                    extras=state.extras,
                    fromSingleResourceFolder=False,
                    identify=self._identify(state, fromSingleResourceFolder=False),
                ))
            except ReactorScramError:
                raise
            except Exception as err:
                self._fail(state, "loose", (head,), err)
                result = None
            if result is not None:
                self._consume(state, "loose", result)
            remaining = [asset for asset in remaining[1:] if asset not in state.consumed]

    def _register(self, state: _RunState) -> None:
        registered: list[BuiltResource] = []
        for resource in state.report.resources:
            try:
                self.context.recordResources([resource])
            except ReactorScramError:
                raise
            except Exception as err:
                self._fail(state, "register", resource.sourceFiles, err)
                continue
            registered.append(resource)
        state.report.resources = registered

    def _archive(self, state: _RunState) -> None:
        archiver = FinishedImportArchiver(self.context)
        try:
            state.report.archived = archiver.archive(state.report.resources, state.report.consumedFiles)
        except ArchiveIncompleteError as err:
            state.report.archiveError = err
            logger.error("Archiving stopped part way: %s", err)
        except UnsafeDeletionError as err:
            state.report.archiveError = err
            logger.critical("%s", err)
