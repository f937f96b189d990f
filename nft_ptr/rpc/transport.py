"""
Node transport selection and connection.

The transport is a small tagged union resolved once from configuration:

    NFT_PTR_IPC set   -> Transport(IPC, <socket path>)
    else              -> Transport(HTTP, NFT_PTR_HTTP or http://127.0.0.1:7545)

`connect()` turns it into an `AsyncWeb3`. IPC uses web3's persistent
`AsyncIPCProvider`, which must be awaited to open the socket; HTTP is
connectionless until the first request.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from web3 import AsyncHTTPProvider, AsyncIPCProvider, AsyncWeb3

from ..config import NftPtrConfig
from ..errors import NodeError
from ..logging import get_logger

log = get_logger(__name__)


class TransportKind(str, Enum):
    IPC = "ipc"
    HTTP = "http"


@dataclass(frozen=True)
class Transport:
    kind: TransportKind
    target: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.kind.value}:{self.target}"


def select_transport(config: NftPtrConfig) -> Transport:
    """IPC path beats HTTP URL; HTTP falls back to the local default endpoint."""
    if config.ipc_path:
        return Transport(TransportKind.IPC, config.ipc_path)
    return Transport(TransportKind.HTTP, config.http_url)


async def connect(transport: Transport) -> AsyncWeb3:
    log.debug("Connecting to node via %s", transport)
    try:
        if transport.kind is TransportKind.IPC:
            return await AsyncWeb3(AsyncIPCProvider(transport.target))
        return AsyncWeb3(AsyncHTTPProvider(transport.target))
    except Exception as e:
        raise NodeError(f"cannot connect to node at {transport}: {e}") from e


async def disconnect(w3: AsyncWeb3) -> None:
    disconnect_fn = getattr(w3.provider, "disconnect", None)
    if disconnect_fn is not None:
        await disconnect_fn()


__all__ = ["TransportKind", "Transport", "select_transport", "connect", "disconnect"]
