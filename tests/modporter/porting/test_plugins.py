# tests/modporter/porting/test_plugins.py
from __future__ import annotations
from pathlib import Path
from types import SimpleNamespace

from modporter.porting.context import ModPorterContext
from modporter.porting.plugins import discoverPlugins


def test_discoverPlugins_ordersByPackageThenFile(context: ModPorterContext, makeFile) -> None:
    mods = context.modsRoot
    makeFile(mods / "Zeta" / "plugins" / "alpha.py", "")
    makeFile(mods / "Acme" / "plugins" / "weapons.py", "")
    makeFile(mods / "Acme" / "plugins" / "armor.py", "")
    makeFile(mods / "Acme" / "plugins" / "_helpers.py", "")
    makeFile(mods / "__imports" / "plugins" / "stray.py", "")
    makeFile(mods / "Acme" / "Assets" / "notplugin.py", "")

    entries = discoverPlugins(mods)

    assert [(entry.packageKey, entry.name, entry.priority) for entry in entries] == [
        ("Acme", "armor", 0),
        ("Acme", "weapons", 1),
        ("Zeta", "alpha", 2),
    ]


def test_discoverPlugins_missingModsFolder(tmp_path: Path) -> None:
    assert discoverPlugins(tmp_path / "nowhere") == []


def test_loadPlugins_callsOnLoadAndRecordsPlugins(context: ModPorterContext, makeFile) -> None:
    makeFile(context.modsRoot / "Acme" / "plugins" / "good.py", "")
    makeFile(context.modsRoot / "Acme" / "plugins" / "quiet.py", "")
    makeFile(context.modsRoot / "Zeta" / "plugins" / "broken.py", "")
    seen: list[tuple[str, str]] = []

    def fakeLoader(path: Path):
        if path.stem == "broken":
            raise SyntaxError("bad plugin")
        if path.stem == "quiet":
            return SimpleNamespace()
        return SimpleNamespace(onLoad=lambda ctx, packageKey: seen.append((path.stem, packageKey)))

    loaded, failed = context.loadPlugins(fakeLoader)

    assert [plugin.entry.name for plugin in loaded] == ["good", "quiet"]
    assert seen == [("good", "Acme")]
    assert len(failed) == 1
    assert failed[0]["package"] == "Zeta"
    assert failed[0]["plugin"] == "broken"
    assert "bad plugin" in failed[0]["reason"]
    assert "SyntaxError" in failed[0]["stack"]

    assert [plugin.name for plugin in context.getModPackage("Acme").plugins] == ["good", "quiet"]
    assert context.tryGetModPackage("Zeta") is None


def test_loadPlugins_importsRealModules(context: ModPorterContext, makeFile) -> None:
    makeFile(
        context.modsRoot / "Acme" / "plugins" / "declare.py",
        "def onLoad(context, packageKey):\n    context.declareType('Asset')\n    context.declareType('Gem', 'Asset')\n",
    )

    loaded, failed = context.loadPlugins()

    assert failed == []
    assert loaded[0].module.onLoad is not None
    assert context.hierarchy.isAssignable("Asset", "Gem")
