from __future__ import annotations

import pytest

from nft_ptr.symbols import demangle


@pytest.mark.parametrize(
    "mangled, expected",
    [
        ("P3Cow", "Cow*"),
        ("3Cow", "Cow"),
        ("_ZN3Cow3mooEv", "Cow::moo()"),
        ("i", "int"),
    ],
)
def test_demangles_types_and_symbols(mangled, expected):
    assert demangle(mangled) == expected


@pytest.mark.parametrize("name", ["", "not mangled!", "_Z"])
def test_failure_returns_input_unchanged(name):
    assert demangle(name) == name
