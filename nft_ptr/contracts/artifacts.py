"""
Precompiled contract artifacts (ABI + bytecode).

Two artifacts are consumed, both produced by the contracts build and shipped
as package data next to this module:

    out/NftPtrToken.json   ABI (list) or {"abi": [...], "bytecode": "0x..."}
    out/NftPtrToken.code   creation bytecode as hex text (optional if the
                           JSON already carries "bytecode")
    out/NftPtrOwner.json
    out/NftPtrOwner.code

`NFT_PTR_ARTIFACTS_DIR` (or the `directory` argument) points the loader at
another directory with the same layout.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import ArtifactError

TOKEN_CONTRACT = "NftPtrToken"
OWNER_CONTRACT = "NftPtrOwner"

_HEX_RE = re.compile(r"^(0x)?[0-9a-fA-F]+$")


@dataclass(frozen=True)
class ContractArtifact:
    name: str
    abi: List[Dict[str, Any]]
    bytecode: str

    def function_names(self) -> List[str]:
        return [str(item["name"]) for item in self.abi if item.get("type") == "function"]


def _read_text(name: str, directory: Optional[Path]) -> Optional[str]:
    if directory is not None:
        p = Path(directory) / name
        return p.read_text(encoding="utf-8") if p.is_file() else None
    res = resources.files("nft_ptr.contracts") / "out" / name
    return res.read_text(encoding="utf-8") if res.is_file() else None


def _normalize_bytecode(name: str, raw: str) -> str:
    code = "".join(raw.split())
    if not code or not _HEX_RE.match(code):
        raise ArtifactError(f"{name}: bytecode is not a hex string")
    if not code.startswith("0x"):
        code = "0x" + code
    if len(code) % 2:
        raise ArtifactError(f"{name}: bytecode has an odd number of hex digits")
    return code


def load_artifact(name: str, directory: Optional[Path] = None) -> ContractArtifact:
    """
    Load `<name>.json` and `<name>.code` and return a validated artifact.

    Raises ArtifactError if the ABI or bytecode is missing or malformed.
    """
    try:
        abi_text = _read_text(f"{name}.json", directory)
        code_text = _read_text(f"{name}.code", directory)
    except OSError as e:
        raise ArtifactError(f"{name}: cannot read artifact: {e}") from e

    if abi_text is None:
        raise ArtifactError(f"{name}: ABI file {name}.json not found")
    try:
        doc = json.loads(abi_text)
    except json.JSONDecodeError as e:
        raise ArtifactError(f"{name}: ABI is not valid JSON: {e}") from e

    if isinstance(doc, dict):
        abi = doc.get("abi")
        if code_text is None and isinstance(doc.get("bytecode"), str):
            code_text = doc["bytecode"]
    else:
        abi = doc
    if not isinstance(abi, list) or not all(isinstance(item, dict) for item in abi):
        raise ArtifactError(f"{name}: ABI must be a list of objects")

    if code_text is None:
        where = directory if directory is not None else "package data"
        raise ArtifactError(
            f"{name}: bytecode file {name}.code not found in {where}; "
            "build the contracts or set NFT_PTR_ARTIFACTS_DIR"
        )
    return ContractArtifact(name=name, abi=abi, bytecode=_normalize_bytecode(name, code_text))


__all__ = ["ContractArtifact", "load_artifact", "TOKEN_CONTRACT", "OWNER_CONTRACT"]
