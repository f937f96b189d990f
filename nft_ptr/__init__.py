"""
nft_ptr
=======

Glue between an instrumented C++ allocator and an EVM node: tracked objects
become tokens of one `NftPtrToken` contract, owners become addresses (either
the session account or a per-instance `NftPtrOwner` contract), and every
ownership change becomes a `mintOrMove` transaction.

Quick start
-----------
    import asyncio
    from nft_ptr import NftPtrSession

    async def main():
        async with await NftPtrSession.connect() as session:
            await session.initialize()
            await session.move_token(0x7ffd1000, 0, 0x55d0c0de, 0x401180, "3Cow")

    asyncio.run(main())
"""

from __future__ import annotations

from .config import NftPtrConfig
from .errors import (
    DeployError,
    MainnetRefusedError,
    NftPtrError,
    NotInitializedError,
    TxError,
)
from .session import NftPtrSession, TransferRecord
from .version import __version__

__all__ = [
    "__version__",
    "NftPtrConfig",
    "NftPtrSession",
    "TransferRecord",
    "NftPtrError",
    "MainnetRefusedError",
    "DeployError",
    "TxError",
    "NotInitializedError",
]
