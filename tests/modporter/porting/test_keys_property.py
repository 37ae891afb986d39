# tests/modporter/porting/test_keys_property.py
from __future__ import annotations

import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, strategies as st  # type: ignore[no-redef]

from modporter.porting.keys import ResourceKey, formatKey, parseKey


# Key parts may contain single colons but never the "::" separator
part_strat = st.text(
    alphabet=st.characters(min_codepoint=32, max_codepoint=126),
    min_size=1,
    max_size=12,
).filter(lambda text: "::" not in text and not text.startswith(":") and not text.endswith(":"))


@given(st.one_of(st.none(), part_strat), part_strat)
def test_parseKey_invertsFormatKey(packageName: str | None, resourceName: str) -> None:
    assert parseKey(formatKey(packageName, resourceName)) == ResourceKey(packageName, resourceName)
