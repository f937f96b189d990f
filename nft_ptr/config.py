"""
nft-ptr configuration: node transport, signing, gas and confirmation policy.

- Loads sane defaults and supports overrides via environment variables (NFT_PTR_*).
- Parsing happens once, at startup; malformed values raise ConfigError.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError

DEFAULT_HTTP_URL = "http://127.0.0.1:7545"
DEFAULT_NUM_CONFIRMATIONS = 0
DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.0


def _env(environ: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    v = environ.get(name)
    return v if v is not None else default


def _parse_int(name: str, val: Optional[str], default: int) -> int:
    """
    Accepts a decimal str and returns int; empty/unset gives `default`.
    """
    if val is None or val.strip() == "":
        return int(default)
    try:
        n = int(val.strip(), 10)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got: {val!r}") from e
    if n < 0:
        raise ConfigError(f"{name} must be non-negative, got: {n}")
    return n


def _parse_float(name: str, val: Optional[str], default: float) -> float:
    if val is None or val.strip() == "":
        return float(default)
    try:
        f = float(val.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got: {val!r}") from e
    if f <= 0:
        raise ConfigError(f"{name} must be positive, got: {f}")
    return f


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ConfigError(f"URL must start with {allowed}, got: {url!r}")
    return url


@dataclass(slots=True)
class NftPtrConfig:
    # Transport
    ipc_path: Optional[str] = None
    http_url: str = field(default_factory=lambda: DEFAULT_HTTP_URL)
    # Signing
    keystore_path: Optional[Path] = None
    keystore_password: Optional[str] = field(default=None, repr=False)
    # Transaction policy
    num_confirmations: int = DEFAULT_NUM_CONFIRMATIONS
    use_hardcoded_gas: bool = True
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    # Baked artifacts override
    artifacts_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        _ensure_scheme(self.http_url, ("http", "https"))
        if self.num_confirmations < 0:
            raise ConfigError(f"num_confirmations must be non-negative, got: {self.num_confirmations}")
        if self.keystore_path is not None and self.keystore_password is None:
            raise ConfigError("a keystore path requires a password (NFT_PTR_PASSWORD)")

    @classmethod
    def from_env(
        cls, prefix: str = "NFT_PTR_", environ: Optional[Mapping[str, str]] = None
    ) -> "NftPtrConfig":
        """
        Create config from environment variables:

        NFT_PTR_IPC                 (IPC socket path; wins over HTTP)
        NFT_PTR_HTTP                (http/https URL)
        NFT_PTR_NUM_CONFIRMATIONS   (int >= 0)
        NFT_PTR_KEYSTORE            (V3 keystore file; enables local signing)
        NFT_PTR_PASSWORD            (keystore password)
        NFT_PTR_NO_HARDCODED_GAS    (set to anything to let the node estimate gas)
        NFT_PTR_RECEIPT_TIMEOUT     (float seconds)
        NFT_PTR_POLL_INTERVAL       (float seconds)
        NFT_PTR_ARTIFACTS_DIR       (directory with <Name>.json / <Name>.code)
        """
        env = os.environ if environ is None else environ

        ipc = _env(env, f"{prefix}IPC") or None
        http = _env(env, f"{prefix}HTTP", DEFAULT_HTTP_URL) or DEFAULT_HTTP_URL
        keystore = _env(env, f"{prefix}KEYSTORE")
        artifacts = _env(env, f"{prefix}ARTIFACTS_DIR")

        return cls(
            ipc_path=ipc,
            http_url=http,
            keystore_path=Path(keystore) if keystore else None,
            keystore_password=_env(env, f"{prefix}PASSWORD"),
            num_confirmations=_parse_int(
                f"{prefix}NUM_CONFIRMATIONS",
                _env(env, f"{prefix}NUM_CONFIRMATIONS"),
                DEFAULT_NUM_CONFIRMATIONS,
            ),
            use_hardcoded_gas=_env(env, f"{prefix}NO_HARDCODED_GAS") is None,
            receipt_timeout=_parse_float(
                f"{prefix}RECEIPT_TIMEOUT",
                _env(env, f"{prefix}RECEIPT_TIMEOUT"),
                DEFAULT_RECEIPT_TIMEOUT,
            ),
            poll_interval=_parse_float(
                f"{prefix}POLL_INTERVAL",
                _env(env, f"{prefix}POLL_INTERVAL"),
                DEFAULT_POLL_INTERVAL,
            ),
            artifacts_dir=Path(artifacts) if artifacts else None,
        )

    @property
    def local_signing(self) -> bool:
        return self.keystore_path is not None

    def to_dict(self) -> Dict[str, Any]:
        # The password is deliberately left out.
        return {
            "ipc_path": self.ipc_path,
            "http_url": self.http_url,
            "keystore_path": str(self.keystore_path) if self.keystore_path else None,
            "num_confirmations": int(self.num_confirmations),
            "use_hardcoded_gas": bool(self.use_hardcoded_gas),
            "receipt_timeout": float(self.receipt_timeout),
            "poll_interval": float(self.poll_interval),
            "artifacts_dir": str(self.artifacts_dir) if self.artifacts_dir else None,
        }


__all__ = ["NftPtrConfig", "DEFAULT_HTTP_URL"]
