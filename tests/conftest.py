from __future__ import annotations

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from hexbytes import HexBytes
from web3 import AsyncWeb3

from nft_ptr.contracts.artifacts import OWNER_CONTRACT, TOKEN_CONTRACT, load_artifact
from nft_ptr import logging as nlog

NODE_ACCOUNT = "0x" + "ab" * 20
PRIVATE_KEY = bytes.fromhex("4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318")
FAKE_BYTECODE = "6080604052348015600f57600080fd5b50"


async def _value(v: Any) -> Any:
    if isinstance(v, BaseException):
        raise v
    return v


class FakeCall:
    """Stands in for a web3 ContractConstructor or ContractFunction."""

    def __init__(self, w3: "FakeW3", kind: str, name: str, args: tuple, to: Optional[str] = None) -> None:
        self.w3 = w3
        self.kind = kind
        self.name = name
        self.args = args
        self.to = to

    async def transact(self, transaction: Optional[Dict[str, Any]] = None) -> HexBytes:
        return self.w3.record(self, dict(transaction or {}), signed=False)

    async def build_transaction(self, transaction: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        tx = dict(transaction or {})
        tx.setdefault("gas", 100_000)
        tx.setdefault("gasPrice", 1_000_000_000)
        tx.setdefault("value", 0)
        tx["data"] = "0x" + FAKE_BYTECODE
        if self.to is not None:
            tx["to"] = self.to
        self.w3.eth.built.append((self, tx))
        return tx


class FakeFunctions:
    def __init__(self, contract: "FakeContract") -> None:
        self._contract = contract

    def __getattr__(self, name: str):
        def bind(*args: Any) -> FakeCall:
            return FakeCall(self._contract.w3, "function", name, args, to=self._contract.address)

        return bind


class FakeContract:
    def __init__(self, w3: "FakeW3", address: str, abi: List[Dict[str, Any]]) -> None:
        self.w3 = w3
        self.address = address
        self.abi = abi
        self.functions = FakeFunctions(self)


class FakeFactory:
    def __init__(self, w3: "FakeW3", abi: List[Dict[str, Any]], bytecode: str) -> None:
        self.w3 = w3
        self.abi = abi
        self.bytecode = bytecode

    def constructor(self, *args: Any) -> FakeCall:
        names = [i.get("name") for i in self.abi if i.get("type") == "function"]
        name = TOKEN_CONTRACT if "mintOrMove" in names else OWNER_CONTRACT
        return FakeCall(self.w3, "constructor", name, args)


class FakeEth:
    def __init__(self, w3: "FakeW3", accounts: List[str], chain_id: int) -> None:
        self.w3 = w3
        self._accounts = accounts
        self._chain_id = chain_id
        self.accounts_queries = 0
        self.chain_id_queries = 0
        self.block = 100
        self.built: List[Any] = []
        self.raw_sent: List[bytes] = []
        self.receipts: Dict[bytes, Dict[str, Any]] = {}

    @property
    def accounts(self):
        self.accounts_queries += 1
        return _value(self._accounts)

    @property
    def chain_id(self):
        self.chain_id_queries += 1
        return _value(self._chain_id)

    @property
    def block_number(self):
        # every query advances the head by one block
        self.block += 1
        return _value(self.block)

    async def get_transaction_count(self, address: str, block_identifier: str = "latest") -> int:
        return sum(1 for t in self.w3.transactions if t["signed"] and t["tx"].get("from") == address)

    async def send_raw_transaction(self, raw: bytes) -> HexBytes:
        self.raw_sent.append(bytes(raw))
        call, tx = self.built[-1]
        return self.w3.record(call, tx, signed=True)

    async def wait_for_transaction_receipt(self, tx_hash: Any, timeout: float = 120, poll_latency: float = 0.1):
        receipt = self.receipts.get(bytes(HexBytes(tx_hash)))
        if receipt is None:
            raise TimeoutError(f"no receipt for {HexBytes(tx_hash).hex()}")
        return receipt

    def contract(self, address: Optional[str] = None, abi: Any = None, bytecode: Optional[str] = None):
        if address is None:
            return FakeFactory(self.w3, abi, bytecode)
        return FakeContract(self.w3, address, abi)


class FakeNet:
    def __init__(self, version: Any) -> None:
        self._version = version

    @property
    def version(self):
        return _value(self._version)


class FakeProvider:
    def __init__(self) -> None:
        self.disconnected = False

    async def disconnect(self) -> None:
        self.disconnected = True


class FakeW3:
    """
    Minimal in-memory web3 surface covering what nft_ptr touches: net.version,
    eth.accounts/chain_id/block_number, contract factories and bound contracts,
    transact/build_transaction, raw submission and receipts.
    """

    def __init__(
        self,
        network_id: Any = "1337",
        accounts: Optional[List[str]] = None,
        chain_id: int = 1337,
    ) -> None:
        self.net = FakeNet(network_id)
        self.eth = FakeEth(self, [NODE_ACCOUNT] if accounts is None else accounts, chain_id)
        self.provider = FakeProvider()
        self.transactions: List[Dict[str, Any]] = []
        self.revert: set = set()
        self.missing_receipts: set = set()
        self._deployed = 0

    def record(self, call: FakeCall, tx: Dict[str, Any], *, signed: bool) -> HexBytes:
        n = len(self.transactions) + 1
        tx_hash = HexBytes(n.to_bytes(32, "big"))
        self.transactions.append(
            {"kind": call.kind, "name": call.name, "args": call.args, "tx": tx, "signed": signed, "hash": tx_hash}
        )
        if call.name in self.missing_receipts:
            return tx_hash
        contract_address = None
        if call.kind == "constructor":
            self._deployed += 1
            contract_address = AsyncWeb3.to_checksum_address("0x" + format(0xC0DE0000 + self._deployed, "040x"))
        self.eth.block += 1
        self.eth.receipts[bytes(tx_hash)] = {
            "transactionHash": tx_hash,
            "status": 0 if call.name in self.revert else 1,
            "blockNumber": self.eth.block,
            "contractAddress": contract_address,
        }
        return tx_hash

    def calls(self, name: str) -> List[Dict[str, Any]]:
        return [t for t in self.transactions if t["name"] == name]


@pytest.fixture
def fake_w3() -> FakeW3:
    return FakeW3()


@pytest.fixture
def make_w3():
    return FakeW3


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    out = tmp_path / "artifacts"
    out.mkdir()
    for name in (TOKEN_CONTRACT, OWNER_CONTRACT):
        abi = (resources.files("nft_ptr.contracts") / "out" / f"{name}.json").read_text(encoding="utf-8")
        (out / f"{name}.json").write_text(abi, encoding="utf-8")
        (out / f"{name}.code").write_text(FAKE_BYTECODE + "\n", encoding="utf-8")
    return out


@pytest.fixture
def artifacts(artifacts_dir: Path):
    return {name: load_artifact(name, artifacts_dir) for name in (TOKEN_CONTRACT, OWNER_CONTRACT)}


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("NFT_PTR_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    nlog.bind(**{field: None for field in nlog.FIELDS})
    logger = logging.getLogger("nft_ptr")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True

