"""Command line tools for nft-ptr.

`nft-ptr check` verifies node and account setup, `nft-ptr replay` feeds a
recorded allocator trace through a session, and `demangle` / `symbolize` expose
the symbol helpers for ad-hoc use.
"""

from __future__ import annotations

__all__ = ["main"]
