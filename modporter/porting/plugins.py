# modporter/porting/plugins.py
from __future__ import annotations
import importlib.util
import logging
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .constants import PLUGINS_FOLDER_NAME

if TYPE_CHECKING:
    from .context import ModPorterContext

logger = logging.getLogger(__name__)

__all__ = ["PluginEntry", "LoadedPlugin", "discoverPlugins", "loadPlugins"]



@dataclass(frozen=True)
class PluginEntry:
    packageKey: str
    path: Path
    # Load order across the whole scan; lower loads first
    priority: int

    @property
    def name(self) -> str:
        return self.path.stem



@dataclass
class LoadedPlugin:
    entry: PluginEntry
    module: Any



def discoverPlugins(modsRoot: Path) -> list[PluginEntry]:
    """mods/<package>/plugins/*.py, packages and files in name order. Reserved "__*" folders are skipped."""
    modsRoot = Path(modsRoot)
    if not modsRoot.is_dir():
        return []
    entries: list[PluginEntry] = []
    for packageFolder in sorted(child for child in modsRoot.iterdir() if child.is_dir()):
        if packageFolder.name.startswith(("__", ".")):
            continue
        pluginFolder = packageFolder / PLUGINS_FOLDER_NAME
        if not pluginFolder.is_dir():
            continue
        for file in sorted(pluginFolder.glob("*.py")):
            if file.name.startswith(("_", ".")):
                continue
            entries.append(PluginEntry(packageKey=packageFolder.name, path=file, priority=len(entries)))
    return entries



def _quickImport(path: Path) -> Any:
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load module from {path}")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod



def loadPlugins(
    context: ModPorterContext,
    loader: Callable[[Path], Any] | None = None,
) -> tuple[list[LoadedPlugin], list[dict[str, Any]]]:
    """
    Returns (loaded, failed) where:
      - loaded: list of LoadedPlugin, in priority order
      - failed: list of {package, plugin, reason, stack}
    A module level onLoad(context, packageKey) is called when present.
    """
    loader = loader or _quickImport
    loaded: list[LoadedPlugin] = []
    failed: list[dict[str, Any]] = []

    for entry in discoverPlugins(context.modsRoot):
        try:
            module = loader(entry.path.resolve())
            onLoad = getattr(module, "onLoad", None)
            if callable(onLoad):
                onLoad(context, entry.packageKey)
            else:
                logger.debug("Plugin '%s' in '%s' has no onLoad(); nothing to initialize", entry.name, entry.packageKey)
            context.updatePackageFromPlugin(entry.packageKey, entry.name, entry.priority)
            loaded.append(LoadedPlugin(entry=entry, module=module))
            logger.info("Loaded plugin '%s' for package '%s'", entry.name, entry.packageKey)
        except Exception as err:
            logger.exception("Failed to load plugin '%s' for package '%s': %s", entry.name, entry.packageKey, err)
            failed.append({
                "package": entry.packageKey,
                "plugin": entry.name,
                "reason": str(err),
                "stack": traceback.format_exc(),
            })

    return loaded, failed
