"""
nft_ptr.rpc
-----------

Node transport helpers:

    from nft_ptr.rpc import select_transport, connect
    w3 = await connect(select_transport(config))
"""

from __future__ import annotations

from .transport import Transport, TransportKind, connect, disconnect, select_transport

__all__ = ["Transport", "TransportKind", "connect", "disconnect", "select_transport"]
