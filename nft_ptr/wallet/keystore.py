"""
Keystore loading: decrypt one Ethereum V3 keystore file into a private key.

Design
------
- The file is the standard Web3 Secret Storage (V3) JSON produced by geth,
  Ganache, MetaMask exports or `eth_account.Account.encrypt`.
- Decryption (scrypt or pbkdf2 KDF, AES-128-CTR, MAC check) is done by
  `eth_account.Account.decrypt`.
- Nothing is ever written back; the key only lives in memory.

Envelope fields we read (others are ignored)
--------------------------------------------
{
  "version": 3,
  "address": "<hex, no 0x>",      # optional
  "crypto": {"kdf": "scrypt" | "pbkdf2", ...}
}
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from eth_account import Account

from ..errors import KeystoreError


@dataclass(frozen=True)
class KeystoreInfo:
    path: Path
    version: int
    kdf: str
    address: Optional[str]


def unlock(path: os.PathLike[str] | str, password: str) -> Tuple[KeystoreInfo, bytes]:
    """
    Decrypt and return (info, 32-byte private key).

    Raises KeystoreError on a missing/malformed file or a wrong password.
    """
    env = _read_json(path)
    info = _check_envelope(path, env)
    try:
        key = Account.decrypt(env, password)
    except Exception as e:
        raise KeystoreError(f"Decryption failed for {path} (bad password or corrupted file)") from e
    return info, bytes(key)


def load_private_key(path: os.PathLike[str] | str, password: str) -> bytes:
    """Convenience wrapper returning only the private key bytes."""
    _, key = unlock(path, password)
    return key


def read_info(path: os.PathLike[str] | str) -> KeystoreInfo:
    """Read envelope metadata without decrypting."""
    return _check_envelope(path, _read_json(path))


# ----- Internals ---------------------------------------------------------------


def _read_json(path: os.PathLike[str] | str) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            data = json.loads(f.read().decode("utf-8"))
    except FileNotFoundError as e:
        raise KeystoreError(f"Keystore not found: {path}") from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise KeystoreError(f"Failed to read keystore {path}: {e}") from e
    if not isinstance(data, dict):
        raise KeystoreError(f"Malformed keystore {path}: top-level JSON is not an object")
    return data


def _check_envelope(path: os.PathLike[str] | str, env: Dict[str, Any]) -> KeystoreInfo:
    if int(env.get("version", 0) or 0) != 3:
        raise KeystoreError(f"Unsupported keystore version in {path}: {env.get('version')!r}")
    crypto = env.get("crypto") or env.get("Crypto")
    if not isinstance(crypto, dict):
        raise KeystoreError(f"Malformed keystore {path}: missing 'crypto' section")
    kdf = crypto.get("kdf")
    if kdf not in ("scrypt", "pbkdf2"):
        raise KeystoreError(f"Unsupported KDF in {path}: {kdf!r}")
    address = env.get("address")
    if isinstance(address, str) and address and not address.startswith("0x"):
        address = "0x" + address
    return KeystoreInfo(
        path=Path(path),
        version=3,
        kdf=str(kdf),
        address=address or None,
    )


__all__ = ["KeystoreInfo", "unlock", "load_private_key", "read_info"]
