from __future__ import annotations

import pytest
from web3 import AsyncWeb3

from nft_ptr.contracts import OWNER_CONTRACT, TOKEN_CONTRACT, deploy_contract
from nft_ptr.errors import DeployError, TxError
from nft_ptr.tx import submit_and_wait, to_hex, wait_for_confirmations
from nft_ptr.wallet.signer import NodeSigner

NODE_ACCOUNT = AsyncWeb3.to_checksum_address("0x" + "ab" * 20)


def test_to_hex_variants():
    assert to_hex(b"\x01\xab") == "0x01ab"
    assert to_hex("0xABCD") == "0xabcd"
    assert to_hex("abcd") == "0xabcd"


@pytest.mark.asyncio
async def test_deploy_returns_bound_contract(fake_w3, artifacts):
    signer = NodeSigner(NODE_ACCOUNT)
    contract, receipt = await deploy_contract(
        fake_w3, signer, artifacts[OWNER_CONTRACT], ("7ffd1000 Cow* 10",), gas=720_000
    )
    assert contract.address == receipt["contractAddress"]
    (sent,) = fake_w3.transactions
    assert sent["kind"] == "constructor"
    assert sent["args"] == ("7ffd1000 Cow* 10",)
    assert sent["tx"]["gas"] == 720_000


@pytest.mark.asyncio
async def test_deploy_without_gas_leaves_estimation_to_node(fake_w3, artifacts):
    await deploy_contract(fake_w3, NodeSigner(NODE_ACCOUNT), artifacts[TOKEN_CONTRACT], ("n", "NFT", "u"))
    assert "gas" not in fake_w3.transactions[0]["tx"]


@pytest.mark.asyncio
async def test_deploy_revert_raises_deploy_error(fake_w3, artifacts):
    fake_w3.revert.add(TOKEN_CONTRACT)
    with pytest.raises(DeployError) as ei:
        await deploy_contract(fake_w3, NodeSigner(NODE_ACCOUNT), artifacts[TOKEN_CONTRACT], ("n", "NFT", "u"))
    assert ei.value.contract == TOKEN_CONTRACT
    assert ei.value.tx_hash is not None
    assert "reverted" in ei.value.message


@pytest.mark.asyncio
async def test_deploy_bad_constructor_args(make_w3, artifacts):
    w3 = make_w3()

    def explode(**kwargs):
        raise ValueError("abi mismatch")

    w3.eth.contract = explode
    with pytest.raises(DeployError, match="cannot build constructor call"):
        await deploy_contract(w3, NodeSigner(NODE_ACCOUNT), artifacts[OWNER_CONTRACT], ())


@pytest.mark.asyncio
async def test_submit_missing_receipt_raises_tx_error(fake_w3):
    fake_w3.missing_receipts.add("mintOrMove")
    token = fake_w3.eth.contract(address=NODE_ACCOUNT, abi=[])
    with pytest.raises(TxError) as ei:
        await submit_and_wait(
            fake_w3, NodeSigner(NODE_ACCOUNT), token.functions.mintOrMove(), method="mintOrMove"
        )
    assert ei.value.method == "mintOrMove"
    assert ei.value.tx_hash == "0x" + "00" * 31 + "01"


@pytest.mark.asyncio
async def test_submission_failure_raises_tx_error(fake_w3):
    class _Refusing:
        async def transact(self, transaction=None):
            raise RuntimeError("insufficient funds")

        async def build_transaction(self, transaction=None):
            raise AssertionError("unused")

    with pytest.raises(TxError, match="insufficient funds") as ei:
        await submit_and_wait(fake_w3, NodeSigner(NODE_ACCOUNT), _Refusing())
    assert ei.value.tx_hash is None


@pytest.mark.asyncio
async def test_confirmations_wait_for_blocks_on_top(fake_w3):
    receipt = {"blockNumber": fake_w3.eth.block + 1}
    head = await wait_for_confirmations(fake_w3, receipt, 3, poll_interval_s=0.001)
    assert head >= receipt["blockNumber"] + 3


@pytest.mark.asyncio
async def test_zero_confirmations_returns_immediately(fake_w3):
    before = fake_w3.eth.block
    await wait_for_confirmations(fake_w3, {"blockNumber": before + 50}, 0, poll_interval_s=10)
    assert fake_w3.eth.block == before + 1
