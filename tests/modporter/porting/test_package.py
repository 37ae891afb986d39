# tests/modporter/porting/test_package.py
from __future__ import annotations

import pytest

from modporter.core.errors import DuplicateResourceError, ResourceNotFoundError
from modporter.porting.keys import ResourceKey
from modporter.porting.package import ModPackage
from modporter.porting.resources import BuiltResource


def _resource(name: str, typeTag: str = "Weapon") -> BuiltResource:
    return BuiltResource(typeTag=typeTag, key=ResourceKey("Acme", name))


def test_add_sameObjectTwice_raises() -> None:
    package = ModPackage("Acme")
    sword = _resource("Sword")
    package.add("Weapon", sword.resourceKey, [sword])

    with pytest.raises(DuplicateResourceError):
        package.add("Weapon", sword.resourceKey, [sword])


def test_add_duplicateLaterInBatch_insertsNothing() -> None:
    package = ModPackage("Acme")
    first, fresh = _resource("Sword"), _resource("Sword")
    package.add("Weapon", "Acme::Sword", [first])

    with pytest.raises(DuplicateResourceError):
        package.add("Weapon", "Acme::Sword", [fresh, first])
    with pytest.raises(DuplicateResourceError):
        package.add("Weapon", "Acme::Axe", [fresh, fresh])

    assert package.get("Weapon", "Acme::Sword") == [first]
    assert set(package.byResourceKey()["Weapon"]) == {"Acme::Sword"}


def test_add_emptyBatch_createsNoSlot() -> None:
    package = ModPackage("Acme")
    package.add("Weapon", "Acme::Sword", [])

    assert not package.has("Weapon", "Acme::Sword")
    assert package.byResourceKey() == {}


def test_add_newObjectUnderSameKey_accumulates() -> None:
    package = ModPackage("Acme")
    first, second = _resource("Sword"), _resource("Sword")
    package.add("Weapon", "Acme::Sword", [first])
    package.add("Weapon", "Acme::Sword", [second])

    assert package.get("Weapon", "Acme::Sword") == [first, second]
    assert package.importedCount == 2


def test_remove_clearsEmptySlot() -> None:
    package = ModPackage("Acme")
    sword = _resource("Sword")
    package.add("Weapon", sword.resourceKey, [sword])

    assert package.remove(sword) is True
    assert not package.has("Weapon", sword.resourceKey)
    assert package.byResourceKey() == {}
    assert package.remove(sword) is False


def test_lookups_tryVariantsNeverRaise() -> None:
    package = ModPackage("Acme")
    assert package.tryGet("Weapon", "Acme::Nope") == []
    assert package.tryGetOfAnyType("Acme::Nope") == []
    with pytest.raises(ResourceNotFoundError):
        package.get("Weapon", "Acme::Nope")
    with pytest.raises(ResourceNotFoundError):
        package.getOfAnyType("Acme::Nope")


def test_getOfAnyType_scansEveryTypeBucket() -> None:
    package = ModPackage("Acme")
    weapon, icon = _resource("Sword"), _resource("Sword", typeTag="Icon")
    package.add("Weapon", "Acme::Sword", [weapon])
    package.add("Icon", "Acme::Sword", [icon])

    assert package.getOfAnyType("Acme::Sword") == [weapon, icon]


def test_byResourceKey_snapshotIsCachedUntilMutation() -> None:
    package = ModPackage("Acme")
    package.add("Weapon", "Acme::Sword", [_resource("Sword")])

    snapshot = package.byResourceKey()
    assert package.byResourceKey() is snapshot

    package.add("Weapon", "Acme::Axe", [_resource("Axe")])
    fresh = package.byResourceKey()
    assert fresh is not snapshot
    assert set(fresh["Weapon"]) == {"Acme::Sword", "Acme::Axe"}


def test_plugins_keepPriorityOrder() -> None:
    package = ModPackage("Acme")
    package.addPlugin("late", 5)
    package.addPlugin("early", 1)

    assert [plugin.name for plugin in package.plugins] == ["early", "late"]
