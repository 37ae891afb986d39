import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from modporter.config.settings import ImporterSettings
from modporter.porting.asset_porter import AssetArchetypePorter
from modporter.porting.context import ModPorterContext



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



@pytest.fixture()
def settings(tmp_path: Path) -> ImporterSettings:
    return ImporterSettings(rootDataFolder=tmp_path / "root", currentUserName="Tester")



@pytest.fixture()
def context(settings: ImporterSettings) -> ModPorterContext:
    return ModPorterContext(settings)



@pytest.fixture()
def assetPorter(context: ModPorterContext) -> AssetArchetypePorter:
    porter = AssetArchetypePorter()
    context.registerPorter(porter)
    return porter



@pytest.fixture()
def makeFile() -> Callable[..., Path]:
    def _make(path: Path, text: str = "data") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path
    return _make
