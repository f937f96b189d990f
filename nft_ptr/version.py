"""
Version helpers for nft-ptr.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"


def version() -> str:
    return __version__


__all__ = ["__version__", "version"]
