"""
nft_ptr.tx.send
===============

Submit a contract call through a `Signer` and wait for it to land.

Primary entry points
--------------------
- wait_for_receipt(w3, tx_hash, *, timeout_s, poll_interval_s) -> receipt
    Delegates to web3's `wait_for_transaction_receipt`.

- wait_for_confirmations(w3, receipt, confirmations, *, poll_interval_s)
    Polls `eth_blockNumber` until `confirmations` blocks sit on top of the
    receipt's block. Zero confirmations returns immediately.

- submit_and_wait(w3, signer, call, params, ...) -> (tx_hash_hex, receipt)
    Sign/submit, wait for the receipt, check status, wait for confirmations.

No retries are attempted: any failure raises TxError and the caller's
operation is over.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping, Optional, Tuple

from web3 import AsyncWeb3

from ..errors import TxError
from ..logging import get_logger
from ..wallet.signer import Signer, TxCall

log = get_logger(__name__)


def to_hex(value: Any) -> str:
    """bytes/HexBytes/str -> 0x-prefixed lowercase hex string."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    s = str(value)
    return s.lower() if s.startswith(("0x", "0X")) else "0x" + s.lower()


async def wait_for_receipt(
    w3: AsyncWeb3,
    tx_hash: Any,
    *,
    timeout_s: float = 120.0,
    poll_interval_s: float = 1.0,
) -> Mapping[str, Any]:
    return await w3.eth.wait_for_transaction_receipt(
        tx_hash, timeout=timeout_s, poll_latency=poll_interval_s
    )


async def wait_for_confirmations(
    w3: AsyncWeb3,
    receipt: Mapping[str, Any],
    confirmations: int,
    *,
    poll_interval_s: float = 1.0,
) -> int:
    """
    Block until the receipt's block has `confirmations` blocks on top of it.

    Returns the head block number observed last.
    """
    target = int(receipt["blockNumber"]) + int(confirmations)
    while True:
        head = int(await w3.eth.block_number)
        if confirmations <= 0 or head >= target:
            return head
        log.debug("waiting for confirmations head=%d target=%d", head, target)
        await asyncio.sleep(poll_interval_s)


async def submit_and_wait(
    w3: AsyncWeb3,
    signer: Signer,
    call: TxCall,
    params: Optional[Dict[str, Any]] = None,
    *,
    method: Optional[str] = None,
    confirmations: int = 0,
    timeout_s: float = 120.0,
    poll_interval_s: float = 1.0,
) -> Tuple[str, Mapping[str, Any]]:
    """
    Sign and submit `call`, then wait for receipt and confirmations.

    Returns (tx_hash_hex, receipt). Raises TxError on any failure, including a
    receipt with status 0 (reverted).
    """
    try:
        raw_hash = await signer.send(w3, call, params)
    except Exception as e:
        raise TxError(f"submission failed: {e}", method=method) from e
    tx_hash = to_hex(raw_hash)
    log.debug("submitted %s", method or "transaction", extra={"tx_hash": tx_hash})

    try:
        receipt = await wait_for_receipt(w3, raw_hash, timeout_s=timeout_s, poll_interval_s=poll_interval_s)
    except Exception as e:
        raise TxError(f"no receipt: {e}", method=method, tx_hash=tx_hash) from e

    if int(receipt.get("status", 1)) == 0:
        raise TxError("transaction reverted", method=method, tx_hash=tx_hash, receipt=dict(receipt))

    try:
        await wait_for_confirmations(w3, receipt, confirmations, poll_interval_s=poll_interval_s)
    except Exception as e:
        raise TxError(f"confirmation wait failed: {e}", method=method, tx_hash=tx_hash) from e
    return tx_hash, receipt


__all__ = ["to_hex", "wait_for_receipt", "wait_for_confirmations", "submit_and_wait"]
