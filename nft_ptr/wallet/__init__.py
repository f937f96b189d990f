"""
nft_ptr.wallet
==============

- Keystore loading (one V3 keystore file, decrypted in memory).
- Signers: node-delegated or local-key, behind one `Signer` interface.
"""

from .keystore import KeystoreInfo, load_private_key, unlock
from .signer import LocalKeySigner, NodeSigner, Signer, resolve_signer

__all__ = [
    # keystore
    "KeystoreInfo",
    "load_private_key",
    "unlock",
    # signers
    "Signer",
    "NodeSigner",
    "LocalKeySigner",
    "resolve_signer",
]
