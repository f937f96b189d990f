"""
nft_ptr.contracts.deployer
==========================

Deploy a precompiled contract artifact (ABI + creation bytecode).

This module:
- Builds the constructor call from the artifact and constructor args
- Applies the gas policy (fixed limit, or node estimation when None)
- Submits through a `Signer` (node-signed or locally signed)
- Waits for the receipt and the configured confirmations
- Returns a contract handle bound to the deployed address

Typical usage
-------------
    artifact = load_artifact(TOKEN_CONTRACT)
    contract, receipt = await deploy_contract(
        w3, signer, artifact, ("NftPtrToken demo 1700000000000", "NFT", TOKEN_BASE_URI),
        gas=TOKEN_DEPLOY_GAS,
    )
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Tuple

from web3 import AsyncWeb3
from web3.contract import AsyncContract

from ..errors import DeployError, TxError
from ..tx.send import submit_and_wait
from ..wallet.signer import Signer
from .artifacts import ContractArtifact

# Gas limits used when hardcoded gas is enabled
TOKEN_DEPLOY_GAS = 6_000_000
OWNER_DEPLOY_GAS = 720_000


def extract_contract_address(receipt: Mapping[str, Any]) -> Optional[str]:
    v = receipt.get("contractAddress")
    if isinstance(v, str) and v:
        return v
    return None


def bind_contract(w3: AsyncWeb3, artifact: ContractArtifact, address: str) -> AsyncContract:
    return w3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=artifact.abi)


async def deploy_contract(
    w3: AsyncWeb3,
    signer: Signer,
    artifact: ContractArtifact,
    args: Sequence[Any],
    *,
    gas: Optional[int] = None,
    confirmations: int = 0,
    timeout_s: float = 120.0,
    poll_interval_s: float = 1.0,
) -> Tuple[AsyncContract, Mapping[str, Any]]:
    """
    Deploy `artifact` with constructor `args` and return (contract, receipt).

    Any failure (encoding, submission, revert, missing address, confirmation
    wait) raises DeployError.
    """
    try:
        factory = w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        call = factory.constructor(*args)
    except Exception as e:
        raise DeployError(artifact.name, f"cannot build constructor call: {e}") from e

    params = {"gas": int(gas)} if gas is not None else {}
    try:
        tx_hash, receipt = await submit_and_wait(
            w3,
            signer,
            call,
            params,
            method="constructor",
            confirmations=confirmations,
            timeout_s=timeout_s,
            poll_interval_s=poll_interval_s,
        )
    except TxError as e:
        raise DeployError(artifact.name, e.message, tx_hash=e.tx_hash) from e

    address = extract_contract_address(receipt)
    if address is None:
        raise DeployError(artifact.name, "receipt carries no contractAddress", tx_hash=tx_hash)
    return bind_contract(w3, artifact, address), receipt


__all__ = [
    "TOKEN_DEPLOY_GAS",
    "OWNER_DEPLOY_GAS",
    "extract_contract_address",
    "bind_contract",
    "deploy_contract",
]
