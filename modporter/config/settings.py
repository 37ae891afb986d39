# modporter/config/settings.py
from __future__ import annotations
import getpass
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import json5
from pydantic import BaseModel, ConfigDict, Field

from modporter.porting.constants import (
    DATA_FOLDER_NAME,
    FINISHED_IMPORTS_FOLDER_NAME,
    IMPORT_FOLDER_NAME,
    MOD_FOLDER_NAME,
)
from .layers import ConfigLayer, ConfigStack

logger = logging.getLogger(__name__)

__all__ = [
    "SuppressRecurringSettings",
    "LoggingSettings",
    "ImporterSettings",
    "loadSettings",
    "ENV_PREFIX",
]



ENV_PREFIX = "MODPORTER_"

# env var suffix -> dotted settings path
_ENV_KEYS: dict[str, str] = {
    "ROOT": "rootDataFolder",
    "USER": "currentUserName",
    "RECURSIVE": "recursiveFolderImport",
    "DEV": "logging.devMode",
    "LOG_FILE": "logging.logFile",
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}



class SuppressRecurringSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    windowSeconds: int = 60
    maxPerWindow: int = 5
    summaryLevel: str = "INFO"



class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    devMode: bool = False
    logFile: str | None = None
    maxBytes: int = 10 * 1024 * 1024
    backupCount: int = 5
    propagate: bool = True
    suppressRecurring: SuppressRecurringSettings = Field(default_factory=SuppressRecurringSettings)



class ImporterSettings(BaseModel):
    """Validated settings for one import session."""
    model_config = ConfigDict(extra="forbid")

    # Directory that holds the mods/ and data/ folders
    rootDataFolder: Path = Path(".")
    modsFolderName: str = MOD_FOLDER_NAME
    dataFolderName: str = DATA_FOLDER_NAME
    # Falls back to the OS login name
    currentUserName: str | None = None
    # Whether the directory pass descends into sub folders
    recursiveFolderImport: bool = True
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def modsRoot(self) -> Path:
        return self.rootDataFolder / self.modsFolderName

    @property
    def dataRoot(self) -> Path:
        return self.rootDataFolder / self.dataFolderName

    @property
    def inboxRoot(self) -> Path:
        return self.modsRoot / IMPORT_FOLDER_NAME

    @property
    def processedRoot(self) -> Path:
        return self.modsRoot / FINISHED_IMPORTS_FOLDER_NAME

    def resolveUserName(self) -> str:
        if self.currentUserName:
            return self.currentUserName
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            logger.warning("Could not determine the current user; using 'Unknown User'")
            return "Unknown User"



def _setDotted(target: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    node = target
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value



def _envLayer(env: Mapping[str, str]) -> ConfigLayer:
    data: dict[str, Any] = {}
    for suffix, path in _ENV_KEYS.items():
        raw = env.get(ENV_PREFIX + suffix)
        if raw is None or raw == "":
            continue
        value: Any = raw
        if path in ("recursiveFolderImport", "logging.devMode"):
            value = raw.strip().lower() in _TRUE_STRINGS
        _setDotted(data, path, value)
    return ConfigLayer(name="environment", scope="env", data=data)



def _fileLayer(path: Path) -> ConfigLayer:
    if not path.is_file():
        raise FileNotFoundError(f"Settings file '{path}' not found")
    raw = json5.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, Mapping):
        raise TypeError(f"Settings file '{path}' must contain an object, got {type(raw).__name__}")
    return ConfigLayer(name=str(path), scope="file", data=dict(raw))



def loadSettings(
    path: Path | str | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> ImporterSettings:
    """
    Build ImporterSettings from layered sources.

    Precedence (later wins):
      1) shipped defaults (model defaults)
      2) JSON/JSON5 settings file, when `path` is given
      3) MODPORTER_* environment variables
      4) explicit overrides
    """
    stack = ConfigStack()
    if path is not None:
        stack.addLayer(_fileLayer(Path(path)))
    stack.addLayer(_envLayer(os.environ if env is None else env))
    if overrides:
        stack.addLayer(ConfigLayer(name="overrides", scope="override", data=dict(overrides)))

    merged = stack.merged()
    logger.debug("Loaded settings from %d layer(s)", len(stack.layers()))
    return ImporterSettings.model_validate(merged)
