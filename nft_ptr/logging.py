"""
nft_ptr.logging
---------------

Process logging for nft-ptr. Every record can carry the three fields that
tie a log line to the chain: the network id, the signing account and the
transaction hash.

- `network_id` and `account` are bound once per session via `bind()`.
- `tx_hash` is attached per record: ``log.info(..., extra={"tx_hash": h})``.

Usage
-----
    from nft_ptr import logging as nlog

    nlog.configure(json=False, level="INFO")
    log = nlog.get_logger(__name__)

    nlog.bind(network_id=5)
    log.info("Transaction: %s", tx_hash, extra={"tx_hash": tx_hash})
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from typing import Any, Dict, Optional

FIELDS = ("network_id", "account", "tx_hash")

_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("nft_ptr_log_context", default={})


def bind(**fields: Any) -> None:
    """Merge chain fields into the active context; a None value drops the field."""
    unknown = set(fields) - set(FIELDS)
    if unknown:
        raise ValueError(f"unknown log field(s): {', '.join(sorted(unknown))}")
    cur = dict(_CONTEXT.get())
    for k, v in fields.items():
        if v is None:
            cur.pop(k, None)
        else:
            cur[k] = v.lower() if isinstance(v, str) else v
    _CONTEXT.set(cur)


def _fields(record: logging.LogRecord) -> Dict[str, Any]:
    out = dict(_CONTEXT.get())
    tx_hash = getattr(record, "tx_hash", None)
    if tx_hash is not None:
        out["tx_hash"] = str(tx_hash).lower()
    return {k: out[k] for k in FIELDS if k in out}


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(_fields(record))
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    One line per record:
      2026-01-05T12:34:56.789+00:00 | INFO  | nft_ptr.session | network_id=5 tx_hash=0x.. | Transaction: 0x..
    """

    def format(self, record: logging.LogRecord) -> str:
        line = f"{_utcnow_iso()} | {record.levelname:<5} | {record.name}"
        fields = _fields(record)
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        line += f" | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int | None = None,
    stream: io.TextIOBase = sys.stderr,
) -> None:
    """
    Configure the `nft_ptr` logger tree.

    `json` defaults to NFT_PTR_LOG_FORMAT=json|text (text when unset); `level`
    defaults to NFT_PTR_LOG_LEVEL or INFO.
    """
    lvl = _coerce_level(level if level is not None else os.environ.get("NFT_PTR_LOG_LEVEL", "INFO"))
    if json is None:
        json = os.environ.get("NFT_PTR_LOG_FORMAT", "").strip().lower() == "json"

    root = logging.getLogger("nft_ptr")
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)
    console = logging.StreamHandler(stream)
    console.setFormatter(JSONFormatter() if json else TextFormatter())
    root.addHandler(console)
    root.propagate = False

    for noisy in ("web3", "urllib3", "aiohttp"):
        logging.getLogger(noisy).setLevel(max(lvl, logging.WARNING))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "nft_ptr")


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


__all__ = ["FIELDS", "bind", "configure", "get_logger", "JSONFormatter", "TextFormatter"]
