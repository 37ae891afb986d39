# tests/modporter/porting/test_keys.py
from __future__ import annotations

import pytest

from modporter.core.errors import MalformedKeyError, MissingFieldError
from modporter.porting.keys import ResourceKey, formatKey, packageOf, parseKey


def test_formatKey_joinsPackageAndName() -> None:
    assert formatKey("Core", "Sword") == "Core::Sword"
    assert str(ResourceKey("Core", "Sword")) == "Core::Sword"


def test_formatKey_withoutPackage_isJustTheName() -> None:
    assert formatKey(None, "Sword") == "Sword"


@pytest.mark.parametrize("packageName, resourceName", [("Co::re", "Sword"), ("Core", "Sw::ord")])
def test_formatKey_rejectsSeparatorInEitherPart(packageName: str, resourceName: str) -> None:
    with pytest.raises(MalformedKeyError):
        formatKey(packageName, resourceName)


def test_formatKey_rejectsEmptyName() -> None:
    with pytest.raises(MissingFieldError):
        formatKey("Core", "")


def test_parseKey_splitsOnSingleSeparator() -> None:
    assert parseKey("Core::Sword") == ResourceKey("Core", "Sword")
    assert parseKey("Sword") == ResourceKey(None, "Sword")


def test_parseKey_rejectsTwoSeparators() -> None:
    with pytest.raises(MalformedKeyError):
        parseKey("a::b::c")


def test_malformedKey_isAlsoValueError() -> None:
    with pytest.raises(ValueError):
        parseKey("a::b::c")


def test_packageOf_acceptsPackageOrResourceKey() -> None:
    assert packageOf("Core::Sword") == "Core"
    assert packageOf("Core") == "Core"
