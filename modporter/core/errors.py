# modporter/core/errors.py
from __future__ import annotations
from collections.abc import Iterable
from pathlib import Path
from typing import Any

__all__ = [
    "ModPorterError",
    "MalformedKeyError",
    "MissingFieldError",
    "ConfigParseError",
    "NotFoundError",
    "PorterNotFoundError",
    "PackageNotFoundError",
    "ResourceNotFoundError",
    "DuplicateResourceError",
    "ImportCancelledError",
    "ArchiveIncompleteError",
    "ReactorScramError",
    "UnsafeDeletionError",
]



class ModPorterError(Exception):
    """Base class for every recoverable modporter error."""
    pass



class MalformedKeyError(ModPorterError, ValueError):
    """A package or resource name uses the reserved '::' separator, or a key has more than one."""
    pass



class MissingFieldError(ModPorterError, ValueError):
    """A required value (usually the resource name) could not be resolved."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Missing required field '{field}'")



class ConfigParseError(ModPorterError, ValueError):
    """A resource config file could not be read or parsed."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot parse config '{self.path}': {reason}")



class NotFoundError(ModPorterError, LookupError):
    """Requested porter, package, model or resource is absent."""
    pass



class PorterNotFoundError(NotFoundError):

    def __init__(self, typeTag: str, flavour: str = "porter"):
        self.typeTag = typeTag
        super().__init__(f"No {flavour} registered for type '{typeTag}' or any of its ancestors")



class PackageNotFoundError(NotFoundError):

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Mod package '{key}' has not been imported")



class ResourceNotFoundError(NotFoundError):

    def __init__(self, resourceKey: str, typeTag: str | None = None):
        self.resourceKey = resourceKey
        self.typeTag = typeTag
        where = f" of type '{typeTag}'" if typeTag else ""
        super().__init__(f"No resource{where} with key '{resourceKey}'")



class DuplicateResourceError(ModPorterError, ValueError):
    """The same object is already registered under the same (type, key) slot."""
    pass



class ImportCancelledError(ModPorterError):
    """Raised at a phase boundary when the caller's cancel signal is set."""

    def __init__(self, phase: str, report: Any = None):
        self.phase = phase
        self.report = report
        super().__init__(f"Import cancelled before phase '{phase}'")



class ArchiveIncompleteError(ModPorterError, OSError):
    """Moving a batch into the processed-imports folder stopped part way."""

    def __init__(self, moved: Iterable[Path], pending: Iterable[Path], cause: BaseException | None = None):
        self.moved = list(moved)
        self.pending = list(pending)
        self.cause = cause
        super().__init__(
            f"Archive stopped after {len(self.moved)} file(s); {len(self.pending)} file(s) left in place: {cause}"
        )



class ReactorScramError(Exception):
    """Raised when modporter is about to violate a core invariant and hits the shutdown button."""
    pass



class UnsafeDeletionError(ReactorScramError):
    """The archiver tried to delete a protected sentinel folder."""

    def __init__(self, path: Path, moved: Iterable[Path] = ()):
        self.path = Path(path)
        self.moved = list(moved)
        super().__init__(
            f"Refusing to delete protected folder '{self.path}'.\n"
            "⚠️ PROTECTED FOLDER ⚠️\n"
            "The archiver walked all the way up to a sentinel folder and reached for the delete key. "
            "Files moved so far were left where they landed; fix the layout by hand."
        )
