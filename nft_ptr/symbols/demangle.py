"""
C++ name demangling.

Type names coming from the tracer are Itanium-mangled *types* ("P3Cow"), not
only external symbols ("_ZN3Cow3mooEv"), so the demangler runs with
`external_only=False`. Anything the C++ runtime cannot demangle is returned
unchanged.
"""

from __future__ import annotations

import functools

import cxxfilt


@functools.lru_cache(maxsize=4096)
def demangle(name: str) -> str:
    """
    >>> demangle("P3Cow")
    'Cow*'
    >>> demangle("not mangled")
    'not mangled'
    """
    if not name:
        return name
    try:
        return cxxfilt.demangle(name, external_only=False)
    except (cxxfilt.Error, ValueError, UnicodeError):
        return name


__all__ = ["demangle"]
