"""
nft-ptr - command line entry point.

Commands:
  nft-ptr check                  Connect, refuse mainnet, resolve the account
  nft-ptr replay TRACE           Apply a JSON-lines allocator trace on chain
  nft-ptr demangle NAME...       Demangle C++ type/symbol names
  nft-ptr symbolize PC...        Program counter -> "symbol (file:line)"

Global options:
  --log-level TEXT               DEBUG, INFO, WARNING, ERROR
  --json-logs / --text-logs      Log format (default: NFT_PTR_LOG_FORMAT or TTY detection)

Node, keystore and gas settings come from NFT_PTR_* environment variables.

Examples:
  NFT_PTR_HTTP=http://127.0.0.1:8545 nft-ptr check
  nft-ptr replay trace.jsonl --dry-run
  nft-ptr demangle P3Cow _ZN3Cow3mooEv
"""

from __future__ import annotations

import asyncio
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import typer

from .. import logging as nlog
from ..config import NftPtrConfig
from ..errors import MainnetRefusedError, NftPtrError, NodeError
from ..events import MoveToken, TracerEvent, apply_event, read_events
from ..session import NftPtrSession
from ..symbols import demangle as demangle_name
from ..symbols import pc_location
from ..version import __version__

T = TypeVar("T")

app = typer.Typer(
    name="nft-ptr",
    help="Track C++ object ownership as NFT transfers on an EVM test network",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"nft-ptr {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Minimum log level (DEBUG, INFO, WARNING, ERROR)",
        envvar="NFT_PTR_LOG_LEVEL",
    ),
    json_logs: Optional[bool] = typer.Option(
        None,
        "--json-logs/--text-logs",
        help="Emit JSON log lines instead of text",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """
    nft-ptr: every tracked object is a token, every ownership change a transaction.
    """
    nlog.configure(json=json_logs, level=log_level, stream=sys.stderr)


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------


def _fail(e: NftPtrError) -> typer.Exit:
    typer.echo(f"Error: {e}", err=True)
    return typer.Exit(2 if isinstance(e, MainnetRefusedError) else 1)


def _run(fn: Callable[[], Awaitable[T]]) -> T:
    try:
        return asyncio.run(fn())
    except NftPtrError as e:
        raise _fail(e) from e


def _load_config() -> NftPtrConfig:
    try:
        return NftPtrConfig.from_env()
    except NftPtrError as e:
        raise _fail(e) from e


def _parse_pc(raw: str) -> int:
    try:
        return int(raw, 16) if raw.lower().startswith("0x") else int(raw, 10)
    except ValueError:
        raise typer.BadParameter(f"not a hex or decimal address: {raw!r}") from None


def _summary(events: List[TracerEvent]) -> str:
    counts = Counter(e.kind for e in events)
    return (
        f"{len(events)} events: {counts['ptr_initialize']} ptr_initialize, "
        f"{counts['move']} move, {counts['ptr_destroy']} ptr_destroy"
    )


# ----------------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------------


@app.command()
def check() -> None:
    """Connect to the node, run the mainnet guard and resolve the signing account."""
    config = _load_config()

    async def go() -> Any:
        async with await NftPtrSession.connect(config) as session:
            network_id = await session.check_not_prod()
            signer = await session.resolve_account()
            try:
                chain_id = await session.w3.eth.chain_id
            except Exception as e:
                raise NodeError(f"eth_chainId failed: {e}") from e
            return network_id, signer, chain_id

    network_id, signer, chain_id = _run(go)
    typer.echo(f"Network id: {network_id}")
    typer.echo(f"Chain id:   {chain_id}")
    typer.echo(f"Account:    {signer.address} ({signer.kind} signer)")


@app.command()
def replay(
    trace: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON-lines trace file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only parse and summarize the trace"),
) -> None:
    """Apply every event of an allocator trace, in order, to a fresh session."""
    try:
        events = read_events(trace)
    except NftPtrError as e:
        raise _fail(e) from e

    if dry_run:
        typer.echo(_summary(events))
        return

    config = _load_config()

    async def go() -> Any:
        async with await NftPtrSession.connect(config) as session:
            await session.initialize()
            tx_hashes = []
            for event in events:
                record = await apply_event(session, event)
                if isinstance(event, MoveToken) and record is not None:
                    tx_hashes.append(record.tx_hash)
            return session.token_contract.address, tx_hashes

    token_address, tx_hashes = _run(go)
    typer.echo(_summary(events))
    typer.echo(f"Token contract: {token_address}")
    for tx_hash in tx_hashes:
        typer.echo(f"  {tx_hash}")


@app.command()
def demangle(names: List[str] = typer.Argument(..., help="Mangled names, e.g. P3Cow")) -> None:
    """Print the demangled form of each name (unchanged if it does not demangle)."""
    for name in names:
        typer.echo(demangle_name(name))


@app.command()
def symbolize(
    pcs: List[str] = typer.Argument(..., help="Program counters (0x-hex or decimal)"),
    binary: Optional[Path] = typer.Option(
        None, "--binary", "-b", exists=True, dir_okay=False, help="Resolve offline against this ELF file"
    ),
) -> None:
    """Print the source location of each program counter."""
    for raw in pcs:
        pc = _parse_pc(raw)
        typer.echo(f"{pc:#x}\t{pc_location(pc, str(binary) if binary else None)}")


def main() -> None:
    """Entry point for the nft-ptr CLI."""
    app()


if __name__ == "__main__":
    main()
