# modporter/porting/options.py
from __future__ import annotations
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import json5
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from modporter.core.errors import ConfigParseError
from .constants import (
    DESCRIPTION_CONFIG_KEY,
    MOVE_TO_FINISHED_OPTION,
    NAME_CONFIG_KEY,
    NAME_OPTION,
    PACKAGE_NAME_CONFIG_KEY,
    PACKAGE_NAME_OPTION,
    RECURSIVE_OPTION,
    TAGS_CONFIG_KEY,
)

logger = logging.getLogger(__name__)

__all__ = ["ImportOptions", "ResourceConfig", "readConfig", "RESERVED_CONFIG_KEYS"]



RESERVED_CONFIG_KEYS = frozenset({NAME_CONFIG_KEY, PACKAGE_NAME_CONFIG_KEY, DESCRIPTION_CONFIG_KEY, TAGS_CONFIG_KEY})



class ImportOptions(BaseModel):
    """
    Per-call import options. Accepts the flat wire keys ("Name", "PackageName",
    "MoveImportedFilesToFinished", "Recursive"); any other key is kept aside and
    only handed to porters that declare it.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    name: str | None = Field(default=None, alias=NAME_OPTION)
    packageName: str | None = Field(default=None, alias=PACKAGE_NAME_OPTION)
    moveImportedFilesToFinished: bool = Field(default=False, alias=MOVE_TO_FINISHED_OPTION)
    # None means "use the session setting"
    recursive: bool | None = Field(default=None, alias=RECURSIVE_OPTION)

    @classmethod
    def coerce(cls, options: ImportOptions | Mapping[str, Any] | None) -> ImportOptions:
        if options is None:
            return cls()
        if isinstance(options, ImportOptions):
            return options
        return cls.model_validate(dict(options))

    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def explicitlySet(self, fieldName: str) -> bool:
        return fieldName in self.model_fields_set

    def extrasFor(self, validKeys: Iterable[str]) -> dict[str, Any]:
        """Kind-specific option values a porter declared; everything else is dropped."""
        valid = set(validKeys)
        extras = self.extras()
        ignored = sorted(key for key in extras if key not in valid)
        if ignored:
            logger.debug("Ignoring unrecognized import option(s): %s", ", ".join(ignored))
        return {key: value for key, value in extras.items() if key in valid}



class ResourceConfig(BaseModel):
    """
    Parsed resource config (usually "_config.json"). Every key is optional;
    porter-specific keys stay available through body().
    """
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    packageName: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)

    def body(self) -> dict[str, Any]:
        """Non-reserved config keys."""
        return dict(self.model_extra or {})

    def get(self, key: str, default: Any = None) -> Any:
        if key in RESERVED_CONFIG_KEYS:
            value = getattr(self, key)
            return default if value is None else value
        return self.body().get(key, default)



def readConfig(path: Path | str) -> ResourceConfig:
    """Read a JSON/JSON5 resource config. Raises ConfigParseError on any failure."""
    path = Path(path)
    try:
        raw = json5.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        raise ConfigParseError(path, str(err)) from err

    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigParseError(path, f"expected an object, got {type(raw).__name__}")

    try:
        return ResourceConfig.model_validate(dict(raw))
    except ValidationError as err:
        raise ConfigParseError(path, str(err)) from err
