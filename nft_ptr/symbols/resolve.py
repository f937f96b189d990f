"""
Program counter -> source location.

Resolution order for an in-process address:
  1. `dladdr` names the loaded object (and its load base) and, when the
     address falls in an exported function, the nearest dynamic symbol.
  2. The object's ELF `.symtab` (pyelftools) supplies a symbol when the
     dynamic table had none.
  3. The object's DWARF line programs (.debug_line) map the object-relative
     address to (file, line).

Output is one of
    "<demangled symbol> (<file basename>:<line>)"
    "<demangled symbol>"
    "<lowercase hex address>"          (nothing resolved)

Parsed ELF tables are cached per object path for the life of the process.
"""

from __future__ import annotations

import bisect
import ctypes
import ctypes.util
import functools
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, List, Optional, Tuple

from elftools.common.exceptions import DWARFError, ELFError, ELFParseError
from elftools.elf.elffile import ELFFile

from ..logging import get_logger
from .demangle import demangle

log = get_logger(__name__)

_ELF_ERRORS = (ELFError, ELFParseError, DWARFError, OSError, ValueError, KeyError, IndexError)


@dataclass(frozen=True)
class SourceLocation:
    address: int
    symbol: Optional[str] = None      # raw (mangled) name
    file: Optional[str] = None        # basename only
    line: Optional[int] = None
    object_path: Optional[str] = None

    def format(self) -> str:
        if self.symbol is None:
            return format(self.address, "x")
        name = demangle(self.symbol)
        if self.file is not None and self.line is not None:
            return f"{name} ({self.file}:{self.line})"
        return name


# ----------------------------------------------------------------------------
# dladdr
# ----------------------------------------------------------------------------


class _DlInfo(ctypes.Structure):
    _fields_ = [
        ("dli_fname", ctypes.c_char_p),
        ("dli_fbase", ctypes.c_void_p),
        ("dli_sname", ctypes.c_char_p),
        ("dli_saddr", ctypes.c_void_p),
    ]


@functools.lru_cache(maxsize=1)
def _dladdr() -> Any:
    fn = None
    try:
        fn = ctypes.CDLL(None).dladdr
    except (OSError, AttributeError, TypeError):
        # glibc < 2.34 keeps dladdr in libdl
        path = ctypes.util.find_library("dl")
        if path is not None:
            try:
                fn = ctypes.CDLL(path).dladdr
            except (OSError, AttributeError):
                fn = None
    if fn is None:
        log.debug("dladdr unavailable; program counters will not be symbolized")
        return None
    fn.argtypes = [ctypes.c_void_p, ctypes.POINTER(_DlInfo)]
    fn.restype = ctypes.c_int
    return fn


def _decode(b: Optional[bytes]) -> Optional[str]:
    if not b:
        return None
    return b.decode("utf-8", errors="replace")


# ----------------------------------------------------------------------------
# ELF symbol + line tables
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class _LineRange:
    low: int
    high: int
    file: str
    line: int


class ElfIndex:
    """Sorted function symbols and line ranges of one ELF object."""

    def __init__(
        self,
        path: str,
        is_shared: bool,
        symbols: List[Tuple[int, int, str]],
        lines: List[_LineRange],
    ) -> None:
        self.path = path
        self.is_shared = is_shared
        self._symbols = sorted(symbols)
        self._sym_starts = [s[0] for s in self._symbols]
        self._lines = sorted(lines, key=lambda r: r.low)
        self._line_starts = [r.low for r in self._lines]

    @classmethod
    def load(cls, path: str) -> "ElfIndex":
        with open(path, "rb") as f:
            elf = ELFFile(f)
            is_shared = elf["e_type"] == "ET_DYN"
            symbols = _read_symbols(elf)
            lines = _read_lines(elf)
        return cls(path, is_shared, symbols, lines)

    def symbol_at(self, address: int) -> Optional[str]:
        i = bisect.bisect_right(self._sym_starts, address) - 1
        if i < 0:
            return None
        start, end, name = self._symbols[i]
        if start <= address < end:
            return name
        return None

    def line_at(self, address: int) -> Optional[Tuple[str, int]]:
        i = bisect.bisect_right(self._line_starts, address) - 1
        if i < 0:
            return None
        r = self._lines[i]
        if r.low <= address < r.high:
            return r.file, r.line
        return None


def _read_symbols(elf: ELFFile) -> List[Tuple[int, int, str]]:
    out: List[Tuple[int, int, str]] = []
    for sec_name in (".symtab", ".dynsym"):
        section = elf.get_section_by_name(sec_name)
        if section is None or not hasattr(section, "iter_symbols"):
            continue
        for sym in section.iter_symbols():
            if sym["st_info"]["type"] != "STT_FUNC" or not sym.name:
                continue
            start = int(sym["st_value"])
            size = int(sym["st_size"])
            if start and size:
                out.append((start, start + size, sym.name))
        if out:
            break
    return out


def _file_name(line_program: Any, file_index: int) -> str:
    """
    Basename for a line-program file index.

    DWARF v4 file indices are 1-based, DWARF v5 0-based.
    """
    header = line_program.header
    entries = header.get("file_entry", [])
    idx = file_index if header.get("version", 4) >= 5 else file_index - 1
    if idx < 0 or idx >= len(entries):
        return f"<unknown file {file_index}>"
    name = entries[idx].name
    if isinstance(name, bytes):
        name = name.decode("utf-8", errors="replace")
    return PurePosixPath(name).name


def _read_lines(elf: ELFFile) -> List[_LineRange]:
    if elf.get_section_by_name(".debug_line") is None and elf.get_section_by_name(".zdebug_line") is None:
        return []
    if elf.get_section_by_name(".debug_info") is None and elf.get_section_by_name(".zdebug_info") is None:
        return []
    out: List[_LineRange] = []
    dwarf = elf.get_dwarf_info()
    for cu in dwarf.iter_CUs():
        line_program = dwarf.line_program_for_CU(cu)
        if line_program is None:
            continue
        prev = None
        for entry in line_program.get_entries():
            state = entry.state
            if state is None:
                continue
            if prev is not None and state.address > prev.address:
                out.append(_LineRange(prev.address, state.address, _file_name(line_program, prev.file), prev.line))
            # end_sequence rows point one past the block and carry no location
            prev = None if state.end_sequence else state
    return out


@functools.lru_cache(maxsize=64)
def load_elf_index(path: str) -> Optional[ElfIndex]:
    try:
        return ElfIndex.load(path)
    except _ELF_ERRORS as e:
        log.debug("cannot index %s: %s", path, e)
        return None


# ----------------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------------


def resolve_pc(pc: int, binary: Optional[str] = None) -> SourceLocation:
    """
    Resolve `pc` to a SourceLocation.

    With `binary`, `pc` is taken as an address inside that file (offline
    symbolication); otherwise it is a live address in this process.
    """
    pc = int(pc)
    if binary is not None:
        index = load_elf_index(binary)
        if index is None:
            return SourceLocation(address=pc)
        return _refine(SourceLocation(address=pc, object_path=binary), index, pc)

    dladdr = _dladdr()
    if dladdr is None or pc <= 0:
        return SourceLocation(address=pc)
    info = _DlInfo()
    try:
        found = dladdr(ctypes.c_void_p(pc), ctypes.byref(info))
    except (ctypes.ArgumentError, OverflowError):
        return SourceLocation(address=pc)
    if not found:
        return SourceLocation(address=pc)

    object_path = _decode(info.dli_fname)
    loc = SourceLocation(address=pc, symbol=_decode(info.dli_sname), object_path=object_path)
    index = load_elf_index(object_path) if object_path else None
    if index is None:
        return loc
    rel = pc - int(info.dli_fbase or 0) if index.is_shared else pc
    return _refine(loc, index, rel)


def _refine(loc: SourceLocation, index: ElfIndex, rel: int) -> SourceLocation:
    symbol = loc.symbol or index.symbol_at(rel)
    if symbol is None:
        return SourceLocation(address=loc.address, object_path=loc.object_path)
    file_line = index.line_at(rel)
    if file_line is None:
        return SourceLocation(address=loc.address, symbol=symbol, object_path=loc.object_path)
    return SourceLocation(
        address=loc.address,
        symbol=symbol,
        file=file_line[0],
        line=file_line[1],
        object_path=loc.object_path,
    )


def pc_location(pc: int, binary: Optional[str] = None) -> str:
    """Formatted location string for `pc` (see module docstring)."""
    return resolve_pc(pc, binary).format()


__all__ = ["SourceLocation", "ElfIndex", "load_elf_index", "resolve_pc", "pc_location"]
