"""
nft_ptr.contracts
-----------------

Precompiled contract artifacts and the deployer:

    from nft_ptr.contracts import load_artifact, deploy_contract, TOKEN_CONTRACT
"""

from __future__ import annotations

from .artifacts import OWNER_CONTRACT, TOKEN_CONTRACT, ContractArtifact, load_artifact
from .deployer import (
    OWNER_DEPLOY_GAS,
    TOKEN_DEPLOY_GAS,
    bind_contract,
    deploy_contract,
    extract_contract_address,
)

__all__ = [
    "ContractArtifact",
    "load_artifact",
    "TOKEN_CONTRACT",
    "OWNER_CONTRACT",
    "TOKEN_DEPLOY_GAS",
    "OWNER_DEPLOY_GAS",
    "bind_contract",
    "deploy_contract",
    "extract_contract_address",
]
