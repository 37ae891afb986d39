# modporter/porting/constants.py
from __future__ import annotations

__all__ = [
    "MOD_FOLDER_NAME", "DATA_FOLDER_NAME", "IMPORT_FOLDER_NAME",
    "FINISHED_IMPORTS_FOLDER_NAME", "PLUGINS_FOLDER_NAME", "CONFIG_FILE_NAME",
    "CONFIG_EXTENSION", "MODEL_DATA_EXTENSION", "KEY_SEPARATOR",
    "NAME_OPTION", "PACKAGE_NAME_OPTION", "MOVE_TO_FINISHED_OPTION", "RECURSIVE_OPTION",
    "NAME_CONFIG_KEY", "PACKAGE_NAME_CONFIG_KEY", "DESCRIPTION_CONFIG_KEY", "TAGS_CONFIG_KEY",
    "DEFAULT_PACKAGE_SUFFIX", "isIgnoredName",
]



# ----- Folder layout (relative to the root data folder) -----

MOD_FOLDER_NAME = "mods"
DATA_FOLDER_NAME = "data"
IMPORT_FOLDER_NAME = "__imports"
FINISHED_IMPORTS_FOLDER_NAME = "__processed_imports"
PLUGINS_FOLDER_NAME = "plugins"

# ----- Files -----

CONFIG_FILE_NAME = "_config.json"
CONFIG_EXTENSION = ".json"
MODEL_DATA_EXTENSION = ".data.json"

# Reserved exclusively as the package/resource separator
KEY_SEPARATOR = "::"

# ----- Import option keys -----

NAME_OPTION = "Name"
PACKAGE_NAME_OPTION = "PackageName"
MOVE_TO_FINISHED_OPTION = "MoveImportedFilesToFinished"
RECURSIVE_OPTION = "Recursive"

# ----- Config keys -----

NAME_CONFIG_KEY = "name"
PACKAGE_NAME_CONFIG_KEY = "packageName"
DESCRIPTION_CONFIG_KEY = "description"
TAGS_CONFIG_KEY = "tags"

DEFAULT_PACKAGE_SUFFIX = "'s Custom Assets"



def isIgnoredName(name: str) -> bool:
    """
    Dot-files are always ignored; underscore-prefixed entries are ignored
    unless they are exactly the reserved config file name.
    """
    if name.startswith("."):
        return True
    if name.startswith("_") and name != CONFIG_FILE_NAME:
        return True
    return False
