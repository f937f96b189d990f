"""
nft_ptr.wallet.signer
=====================

The signing capability used for every transaction nft-ptr submits.

Two variants, chosen once when the session initializes:

- `NodeSigner`: the node holds an unlocked account and signs
  (`eth_sendTransaction` via web3's `transact`).
- `LocalKeySigner`: a private key decrypted from a keystore signs locally;
  the raw transaction carries an explicit nonce and chain id
  (`eth_sendRawTransaction`).

Both accept a web3 contract "call" object, i.e. anything exposing async
`transact(tx)` and `build_transaction(tx)`: a bound `ContractConstructor`
for deployments or a `ContractFunction` for method calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import AsyncWeb3

from ..errors import AccountError

__all__ = [
    "TxCall",
    "Signer",
    "NodeSigner",
    "LocalKeySigner",
    "resolve_signer",
]


class TxCall(Protocol):
    """The part of a web3 contract call/constructor a signer needs."""

    async def transact(self, transaction: Optional[Dict[str, Any]] = None) -> HexBytes: ...

    async def build_transaction(self, transaction: Optional[Dict[str, Any]] = None) -> Dict[str, Any]: ...


class Signer(ABC):
    """Submits a contract call on behalf of one account."""

    kind: str = "abstract"

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksum address of the signing account."""

    @abstractmethod
    async def send(self, w3: AsyncWeb3, call: TxCall, params: Optional[Dict[str, Any]] = None) -> HexBytes:
        """
        Submit `call` with extra transaction `params` (e.g. {"gas": 220_000}).

        Returns the transaction hash. Does not wait for a receipt.
        """

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"{type(self).__name__}({self.address})"


class NodeSigner(Signer):
    """Delegates signing to an account unlocked on the node."""

    kind = "node"

    def __init__(self, address: str) -> None:
        self._address = AsyncWeb3.to_checksum_address(address)

    @property
    def address(self) -> str:
        return self._address

    async def send(self, w3: AsyncWeb3, call: TxCall, params: Optional[Dict[str, Any]] = None) -> HexBytes:
        tx: Dict[str, Any] = dict(params or {})
        tx["from"] = self._address
        return await call.transact(tx)


class LocalKeySigner(Signer):
    """Signs locally with an in-memory private key."""

    kind = "local"

    def __init__(self, account: LocalAccount) -> None:
        self._account = account
        self._chain_id: Optional[int] = None

    @classmethod
    def from_key(cls, private_key: bytes | str) -> "LocalKeySigner":
        return cls(Account.from_key(private_key))

    @property
    def address(self) -> str:
        return self._account.address

    async def chain_id(self, w3: AsyncWeb3) -> int:
        # Queried once; the node cannot change chains under a live session.
        if self._chain_id is None:
            self._chain_id = int(await w3.eth.chain_id)
        return self._chain_id

    async def send(self, w3: AsyncWeb3, call: TxCall, params: Optional[Dict[str, Any]] = None) -> HexBytes:
        tx: Dict[str, Any] = dict(params or {})
        tx["from"] = self.address
        tx["nonce"] = await w3.eth.get_transaction_count(self.address, "pending")
        tx["chainId"] = await self.chain_id(w3)
        built = await call.build_transaction(tx)
        signed = self._account.sign_transaction(built)
        return await w3.eth.send_raw_transaction(signed.raw_transaction)


async def resolve_signer(w3: AsyncWeb3, private_key: Optional[bytes] = None) -> Signer:
    """
    Local key if one was loaded, otherwise the node's first unlocked account.
    """
    if private_key is not None:
        return LocalKeySigner.from_key(private_key)
    accounts = await w3.eth.accounts
    if not accounts:
        raise AccountError(
            "node exposes no unlocked accounts; set NFT_PTR_KEYSTORE/NFT_PTR_PASSWORD to sign locally"
        )
    return NodeSigner(accounts[0])
