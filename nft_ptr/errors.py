"""
Typed error classes for nft-ptr.

Everything raised on purpose derives from `NftPtrError`, so callers (and the
CLI) can catch one base class. Only two conditions are recovered locally and
never surface here: a type name that fails to demangle and a program counter
with no symbol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

__all__ = [
    "NftPtrError",
    "ConfigError",
    "KeystoreError",
    "NodeError",
    "MainnetRefusedError",
    "AccountError",
    "ArtifactError",
    "DeployError",
    "TxError",
    "NotInitializedError",
    "InstanceIdError",
    "EventFormatError",
]


class NftPtrError(Exception):
    """Base class for all nft-ptr errors."""


class ConfigError(NftPtrError):
    """Malformed or inconsistent NFT_PTR_* configuration."""


class KeystoreError(NftPtrError):
    """Keystore file missing, unreadable, malformed or not decryptable."""


class NodeError(NftPtrError):
    """The node is unreachable or an RPC query failed."""


class MainnetRefusedError(NftPtrError):
    """Raised when the connected node reports the production network."""

    def __init__(self, network_id: str) -> None:
        super().__init__(
            f'Cowardly refusing to run on mainnet (network id {network_id}) and waste real "money"'
        )
        self.network_id = network_id


class AccountError(NftPtrError):
    """No signing account could be resolved."""


class ArtifactError(NftPtrError):
    """A contract ABI or bytecode artifact is missing or malformed."""


@dataclass(eq=False)
class DeployError(NftPtrError):
    """
    Raised when a contract deployment fails (submission, revert or confirmation).

    Fields:
      - contract: artifact name (e.g. "NftPtrToken")
      - message: human-readable description
      - tx_hash: hex hash if the transaction was submitted
    """

    contract: str
    message: str
    tx_hash: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        suffix = f" tx={self.tx_hash}" if self.tx_hash else ""
        return f"DeployError[{self.contract}]{suffix}: {self.message}"


@dataclass(eq=False)
class TxError(NftPtrError):
    """
    Raised when a contract call transaction fails (node rejection, revert, or
    confirmation wait failure).
    """

    message: str
    method: Optional[str] = None
    tx_hash: Optional[str] = None
    receipt: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f"[{self.method}]" if self.method else ""
        suffix = f" tx={self.tx_hash}" if self.tx_hash else ""
        return f"TxError{where}{suffix}: {self.message}"


class NotInitializedError(NftPtrError):
    """A session operation was called before `initialize()`."""


class InstanceIdError(NftPtrError, ValueError):
    """An instance id outside the unsigned 64-bit range."""


@dataclass(eq=False)
class EventFormatError(NftPtrError):
    """A tracer event record could not be parsed."""

    message: str
    line: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f"line {self.line}: " if self.line is not None else ""
        return f"{where}{self.message}"
