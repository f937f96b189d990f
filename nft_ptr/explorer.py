"""
Block-explorer links for recognized public test networks.

Only test networks are listed; on anything else (local Ganache/Anvil, private
chains) no links are produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class Explorer:
    name: str
    etherscan: str
    opensea_slug: str

    def address_url(self, address: str) -> str:
        return f"{self.etherscan}/address/{address.lower()}"

    def token_url(self, address: str) -> str:
        return f"{self.etherscan}/token/{address.lower()}"

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.etherscan}/tx/{tx_hash.lower()}"

    def asset_url(self, token_address: str, token_id: int) -> str:
        return f"https://testnets.opensea.io/assets/{self.opensea_slug}/{token_address.lower()}/{token_id:#x}"


TEST_NETWORKS: Dict[int, Explorer] = {
    5: Explorer("goerli", "https://goerli.etherscan.io", "goerli"),
    11155111: Explorer("sepolia", "https://sepolia.etherscan.io", "sepolia"),
}


def explorer_for(network_id: Optional[int]) -> Optional[Explorer]:
    if network_id is None:
        return None
    return TEST_NETWORKS.get(int(network_id))


__all__ = ["Explorer", "TEST_NETWORKS", "explorer_for"]
