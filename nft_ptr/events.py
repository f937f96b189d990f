"""
nft_ptr.events
==============

Tracer event records and their JSON-lines encoding.

An instrumented allocator emits one record per ownership event; `replay`
feeds a recorded trace to a session in order. Record shapes:

    {"event": "ptr_initialize", "owner": "0x7ffd1000", "pc": "0x401136", "type": "P3Cow"}
    {"event": "move", "owner": "0x7ffd1000", "previous_owner": 0,
     "value": "0x55d0c0de", "pc": "0x401180", "type": "3Cow"}
    {"event": "ptr_destroy", "owner": "0x7ffd1000"}

Integers are JSON numbers or "0x"-prefixed hex strings. Blank lines and lines
starting with "#" are ignored.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Mapping, Optional, Union

from .errors import EventFormatError
from .registry import U64_MAX

if TYPE_CHECKING:  # pragma: no cover
    from .session import NftPtrSession, TransferRecord


@dataclass(frozen=True)
class PtrInitialize:
    owner: int
    pc: int
    type_name: str

    kind = "ptr_initialize"


@dataclass(frozen=True)
class MoveToken:
    owner: int
    previous_owner: int
    value: int
    pc: int
    type_name: str

    kind = "move"


@dataclass(frozen=True)
class PtrDestroy:
    owner: int

    kind = "ptr_destroy"


TracerEvent = Union[PtrInitialize, MoveToken, PtrDestroy]


# ----------------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------------


def _int_field(obj: Mapping[str, Any], key: str, line: Optional[int], *, u64: bool = True) -> int:
    if key not in obj:
        raise EventFormatError(f"missing field {key!r}", line)
    raw = obj[key]
    if isinstance(raw, bool):
        raise EventFormatError(f"field {key!r} must be an integer, got {raw!r}", line)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.lower().startswith("0x"):
        try:
            value = int(raw, 16)
        except ValueError:
            raise EventFormatError(f"field {key!r} is not valid hex: {raw!r}", line) from None
    else:
        raise EventFormatError(f"field {key!r} must be an integer or 0x-hex string, got {raw!r}", line)
    if value < 0 or (u64 and value > U64_MAX):
        raise EventFormatError(f"field {key!r} out of range: {raw!r}", line)
    return value


def _str_field(obj: Mapping[str, Any], key: str, line: Optional[int]) -> str:
    raw = obj.get(key)
    if not isinstance(raw, str):
        raise EventFormatError(f"field {key!r} must be a string", line)
    return raw


def parse_event(obj: Any, line: Optional[int] = None) -> TracerEvent:
    """Build a TracerEvent from one decoded JSON record."""
    if not isinstance(obj, dict):
        raise EventFormatError("event record must be a JSON object", line)
    kind = obj.get("event")
    if kind == PtrInitialize.kind:
        return PtrInitialize(
            owner=_int_field(obj, "owner", line),
            pc=_int_field(obj, "pc", line),
            type_name=_str_field(obj, "type", line),
        )
    if kind == MoveToken.kind:
        return MoveToken(
            owner=_int_field(obj, "owner", line),
            previous_owner=_int_field(obj, "previous_owner", line),
            # token ids are uint256 on chain
            value=_int_field(obj, "value", line, u64=False),
            pc=_int_field(obj, "pc", line),
            type_name=_str_field(obj, "type", line),
        )
    if kind == PtrDestroy.kind:
        return PtrDestroy(owner=_int_field(obj, "owner", line))
    raise EventFormatError(f"unknown event kind {kind!r}", line)


def iter_events(lines: Iterable[str]) -> Iterator[TracerEvent]:
    for lineno, raw in enumerate(lines, start=1):
        text = raw.strip()
        if not text or text.startswith("#"):
            continue
        try:
            obj = json.loads(text)
        except json.JSONDecodeError as e:
            raise EventFormatError(f"invalid JSON: {e.msg}", lineno) from e
        yield parse_event(obj, lineno)


def read_events(source: Union[str, Path, Iterable[str]]) -> List[TracerEvent]:
    """
    Parse a whole trace. `source` is a path or an iterable of lines; the
    trace is validated completely before anything is returned.
    """
    if isinstance(source, (str, Path)):
        with open(source, "r", encoding="utf-8") as f:
            return list(iter_events(f))
    return list(iter_events(source))


# ----------------------------------------------------------------------------
# Dispatch
# ----------------------------------------------------------------------------


async def apply_event(session: "NftPtrSession", event: TracerEvent) -> Optional["TransferRecord"]:
    """Run the session operation for `event`. Returns the TransferRecord for moves."""
    if isinstance(event, PtrInitialize):
        await session.ptr_initialize(event.owner, event.pc, event.type_name)
        return None
    if isinstance(event, MoveToken):
        return await session.move_token(
            event.owner, event.previous_owner, event.value, event.pc, event.type_name
        )
    if isinstance(event, PtrDestroy):
        await session.ptr_destroy(event.owner)
        return None
    raise TypeError(f"not a tracer event: {event!r}")


__all__ = [
    "PtrInitialize",
    "MoveToken",
    "PtrDestroy",
    "TracerEvent",
    "parse_event",
    "iter_events",
    "read_events",
    "apply_event",
]
