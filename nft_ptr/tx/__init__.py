"""
nft_ptr.tx
==========

Transaction submission helpers (sign/submit, receipt, confirmations).
"""

from __future__ import annotations

from . import send as send
from .send import submit_and_wait, to_hex, wait_for_confirmations, wait_for_receipt

__all__ = ["send", "submit_and_wait", "to_hex", "wait_for_confirmations", "wait_for_receipt"]
