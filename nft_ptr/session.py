"""
nft_ptr.session
===============

`NftPtrSession` is the explicit context object the tracer glue owns: one
node connection, one signing account, one token contract and the registry
of per-instance owner contracts. Every operation is a coroutine; callers
apply them one at a time.

Lifecycle
---------
    async with await NftPtrSession.connect() as session:
        await session.initialize()                     # guard, account, token contract
        await session.ptr_initialize(0x7ffd1000, pc, "P3Cow")
        await session.move_token(0x7ffd1000, 0, 0x55d0c0de, pc, "3Cow")
        await session.ptr_destroy(0x7ffd1000)

Failures are fatal for the operation that hit them: nothing is retried and
no compensating transaction is sent.
"""

from __future__ import annotations

import string
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from web3 import AsyncWeb3
from web3.contract import AsyncContract

from . import logging as nlog
from .config import NftPtrConfig
from .contracts.artifacts import OWNER_CONTRACT, TOKEN_CONTRACT, ContractArtifact, load_artifact
from .contracts.deployer import OWNER_DEPLOY_GAS, TOKEN_DEPLOY_GAS, deploy_contract
from .errors import MainnetRefusedError, NftPtrError, NodeError, NotInitializedError
from .explorer import Explorer, explorer_for
from .registry import InstanceRegistry, check_id
from .rpc.transport import connect as open_transport
from .rpc.transport import disconnect, select_transport
from .symbols.demangle import demangle
from .symbols.resolve import pc_location
from .tx.send import submit_and_wait
from .wallet.keystore import load_private_key
from .wallet.signer import Signer, resolve_signer

log = nlog.get_logger(__name__)

TOKEN_BASE_URI = "https://nft-ptr.notnow.dev/?"
TOKEN_SYMBOL = "NFT"
MINT_OR_MOVE_GAS = 220_000
MAINNET_NETWORK_ID = "1"

_ALNUM = frozenset(string.ascii_letters + string.digits)


def percent_encode(text: str) -> str:
    """Escape every byte that is not an ASCII letter or digit as %XX."""
    return "".join(chr(b) if chr(b) in _ALNUM else f"%{b:02X}" for b in text.encode("utf-8"))


def token_contract_name(program: Optional[str] = None, now_ms: Optional[int] = None) -> str:
    """Unique per run: "NftPtrToken <program basename> <unix millis>"."""
    program = program if program is not None else (sys.argv[0] if sys.argv and sys.argv[0] else "python")
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"NftPtrToken {Path(program).name} {now_ms}"


@dataclass(frozen=True)
class TransferRecord:
    owner: str
    previous_owner: str
    value: int
    token_uri: str
    backtrace: str
    tx_hash: Optional[str] = None


class NftPtrSession:
    def __init__(
        self,
        w3: AsyncWeb3,
        config: Optional[NftPtrConfig] = None,
        *,
        private_key: Optional[bytes] = None,
        artifacts: Optional[Mapping[str, ContractArtifact]] = None,
    ) -> None:
        self.w3 = w3
        self.config = config or NftPtrConfig()
        self._private_key = private_key
        self._artifacts: Dict[str, ContractArtifact] = dict(artifacts or {})
        self.signer: Optional[Signer] = None
        self.network_id: Optional[int] = None
        self.token_contract: Optional[AsyncContract] = None
        self.registry: InstanceRegistry[AsyncContract] = InstanceRegistry()

    # ------------------------------------------------------------------ construction

    @classmethod
    async def connect(cls, config: Optional[NftPtrConfig] = None) -> "NftPtrSession":
        """
        Build a session from configuration: decrypt the keystore (if any) and
        open the node transport. Keystore problems surface here, before any
        network traffic.
        """
        config = config or NftPtrConfig.from_env()
        private_key = None
        if config.keystore_path is not None:
            private_key = load_private_key(config.keystore_path, config.keystore_password or "")
        w3 = await open_transport(select_transport(config))
        return cls(w3, config, private_key=private_key)

    async def close(self) -> None:
        await disconnect(self.w3)

    async def __aenter__(self) -> "NftPtrSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.close()

    # ------------------------------------------------------------------ accessors

    @property
    def account(self) -> str:
        if self.signer is None:
            raise NotInitializedError("session not initialized: no account resolved")
        return self.signer.address

    @property
    def explorer(self) -> Optional[Explorer]:
        return explorer_for(self.network_id)

    def is_test_network(self) -> bool:
        return self.explorer is not None

    def artifact(self, name: str) -> ContractArtifact:
        if name not in self._artifacts:
            self._artifacts[name] = load_artifact(name, self.config.artifacts_dir)
        return self._artifacts[name]

    def _gas(self, hardcoded: int) -> Optional[int]:
        return hardcoded if self.config.use_hardcoded_gas else None

    # ------------------------------------------------------------------ startup

    async def check_not_prod(self) -> int:
        try:
            version = str(await self.w3.net.version)
        except Exception as e:
            raise NodeError(f"net_version failed: {e}") from e
        log.info("Connected to network id %s", version)
        if version == MAINNET_NETWORK_ID:
            raise MainnetRefusedError(version)
        try:
            self.network_id = int(version)
        except ValueError as e:
            raise NodeError(f"node reported a non-numeric network id: {version!r}") from e
        nlog.bind(network_id=self.network_id)
        return self.network_id

    async def resolve_account(self) -> Signer:
        try:
            self.signer = await resolve_signer(self.w3, self._private_key)
        except NftPtrError:
            raise
        except Exception as e:
            raise NodeError(f"account lookup failed: {e}") from e
        nlog.bind(account=self.signer.address)
        log.info("Account: %s", self.signer.address.lower())
        if self.explorer is not None:
            log.info("%s", self.explorer.address_url(self.signer.address))
        return self.signer

    async def initialize(self) -> None:
        """
        Refuse mainnet, resolve the signing account, deploy the token contract.
        """
        await self.check_not_prod()
        await self.resolve_account()
        log.info("Deploying NFT contract!")
        token = await self.deploy_token_contract()
        log.info("Token contract deployed at %s", token.address.lower())
        if self.explorer is not None:
            log.info("%s", self.explorer.token_url(token.address))

    async def deploy_token_contract(self) -> AsyncContract:
        signer = self._require_signer()
        contract, _ = await deploy_contract(
            self.w3,
            signer,
            self.artifact(TOKEN_CONTRACT),
            (token_contract_name(), TOKEN_SYMBOL, TOKEN_BASE_URI),
            gas=self._gas(TOKEN_DEPLOY_GAS),
            confirmations=self.config.num_confirmations,
            timeout_s=self.config.receipt_timeout,
            poll_interval_s=self.config.poll_interval,
        )
        self.token_contract = contract
        return contract

    # ------------------------------------------------------------------ registry

    def mem_address_to_owner_contract_address(self, instance_id: int) -> str:
        """Owner contract address for `instance_id`, else the session account."""
        return self.registry.resolve(instance_id, default=self.account)

    async def ptr_initialize(self, owner: int, caller_pc: int, ptr_object_type: str) -> AsyncContract:
        signer = self._require_signer()
        owner = check_id(owner)
        name = f"{owner:x} {demangle(ptr_object_type)} {pc_location(caller_pc)}"
        log.info("Deploying contract for nft_ptr %s", name)
        contract, _ = await deploy_contract(
            self.w3,
            signer,
            self.artifact(OWNER_CONTRACT),
            (name,),
            gas=self._gas(OWNER_DEPLOY_GAS),
            confirmations=self.config.num_confirmations,
            timeout_s=self.config.receipt_timeout,
            poll_interval_s=self.config.poll_interval,
        )
        log.info("Deployed contract for nft_ptr %s at %s", name, contract.address.lower())
        if self.explorer is not None:
            log.info("%s", self.explorer.token_url(contract.address))
        self.registry.register(owner, contract)
        return contract

    async def ptr_destroy(self, owner: int) -> None:
        # The deployed owner contract stays on chain for later inspection.
        self.registry.unregister(owner)

    # ------------------------------------------------------------------ transfers

    async def move_token(
        self,
        owner: int,
        previous_owner: int,
        value: int,
        caller_pc: int,
        object_type: str,
    ) -> TransferRecord:
        signer = self._require_signer()
        token = self._require_token()

        lineinfo = pc_location(caller_pc)
        backtrace = f"{owner:x} {lineinfo}"
        type_name = demangle(object_type)
        token_uri = percent_encode(f"{value:x} {type_name}")
        owner_addr = self.mem_address_to_owner_contract_address(owner)
        previous_addr = self.mem_address_to_owner_contract_address(previous_owner)
        log.info(
            "Transferring %#x (%s) to %#x (%s) from %#x (%s) at PC=%#x (%s)",
            value,
            type_name,
            owner,
            owner_addr.lower(),
            previous_owner,
            previous_addr.lower(),
            caller_pc,
            lineinfo,
        )

        gas = self._gas(MINT_OR_MOVE_GAS)
        tx_hash, _ = await submit_and_wait(
            self.w3,
            signer,
            token.functions.mintOrMove(owner_addr, previous_addr, int(value), token_uri, backtrace),
            {"gas": gas} if gas is not None else {},
            method="mintOrMove",
            confirmations=self.config.num_confirmations,
            timeout_s=self.config.receipt_timeout,
            poll_interval_s=self.config.poll_interval,
        )
        log.info("Transaction: %s", tx_hash, extra={"tx_hash": tx_hash})
        if self.explorer is not None:
            log.info("%s", self.explorer.tx_url(tx_hash), extra={"tx_hash": tx_hash})
            log.info("%s", self.explorer.asset_url(token.address, value), extra={"tx_hash": tx_hash})
        return TransferRecord(
            owner=owner_addr,
            previous_owner=previous_addr,
            value=int(value),
            token_uri=token_uri,
            backtrace=backtrace,
            tx_hash=tx_hash,
        )

    # ------------------------------------------------------------------ internals

    def _require_signer(self) -> Signer:
        if self.signer is None:
            raise NotInitializedError("call initialize() before submitting transactions")
        return self.signer

    def _require_token(self) -> AsyncContract:
        if self.token_contract is None:
            raise NotInitializedError("token contract not deployed; call initialize() first")
        return self.token_contract


__all__ = [
    "NftPtrSession",
    "TransferRecord",
    "percent_encode",
    "token_contract_name",
    "TOKEN_BASE_URI",
    "TOKEN_SYMBOL",
    "MINT_OR_MOVE_GAS",
]
