"""Load the table of functions to check.

The table is a CSV file with one row per function::

    name,start,end
    __ct__9CFileInfoFv,0x02aaffcc,0x02ab0034

Addresses may be written in hex (``0x`` prefix) or decimal.
"""
import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from .errors import InputError, SymbolTableError

log = logging.getLogger(__name__)

HEADER = ("name", "start", "end")


@dataclass(frozen=True)
class Symbol:
    name: str
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start

    @property
    def instruction_count(self) -> int:
        return self.size // 4


def parse_address(text: str) -> int:
    return int(text.strip(), 0)


def parse_row(row, lineno: int) -> Symbol:
    if len(row) != 3:
        raise SymbolTableError(f"row {lineno}: expected 3 fields, got {len(row)}")
    name = row[0].strip()
    if not name:
        raise SymbolTableError(f"row {lineno}: empty symbol name")
    try:
        start = parse_address(row[1])
        end = parse_address(row[2])
    except ValueError as exc:
        raise SymbolTableError(f"row {lineno}: bad address: {exc}") from exc
    if start < 0 or start >= end:
        raise SymbolTableError(
            f"row {lineno}: {name} has empty or inverted range 0x{start:X}-0x{end:X}"
        )
    if start % 4 or end % 4:
        raise SymbolTableError(
            f"row {lineno}: {name} range 0x{start:X}-0x{end:X} is not word aligned"
        )
    return Symbol(name, start, end)


def load_symbols(path) -> Dict[str, Symbol]:
    """Return mapping of name -> Symbol, in table order."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InputError(f"cannot read symbol table {path}: {exc}") from exc

    symbols: Dict[str, Symbol] = {}
    for lineno, row in enumerate(csv.reader(text.splitlines()), start=1):
        if not row or not "".join(row).strip():
            continue
        if row[0].lstrip().startswith("#"):
            continue
        if lineno == 1 and tuple(f.strip().lower() for f in row) == HEADER:
            continue
        sym = parse_row(row, lineno)
        if sym.name in symbols:
            raise SymbolTableError(f"row {lineno}: duplicate symbol {sym.name}")
        symbols[sym.name] = sym
    log.debug("Loaded %d symbols from %s", len(symbols), path)
    return symbols
