"""
nft_ptr.symbols
---------------

Symbolication helpers: C++ demangling and program counter -> source line.
"""

from __future__ import annotations

from .demangle import demangle
from .resolve import SourceLocation, pc_location, resolve_pc

__all__ = ["demangle", "SourceLocation", "pc_location", "resolve_pc"]
