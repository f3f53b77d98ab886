"""Run the object dump tool and read instruction words out of its listing.

With ``-raw`` the dump tool prints each function as a label line followed
by one line per instruction word::

    DoSomething__5CTestFv:
    0x00000000 9421FFF0 ...
    0x00000004 7C0802A6 ...

Only the hex word at columns 11-18 of an instruction line is used.
"""
import logging
import re
import subprocess
from typing import Dict, List, Sequence

from .errors import (
    AmbiguousSymbolError,
    DumpParseError,
    DumpToolError,
    SymbolNotFoundError,
)

log = logging.getLogger(__name__)

DEFAULT_TOOL = "gdump"
DEFAULT_FLAGS = (
    "-N",         # only apply the flags given here
    "-ytext",     # text section only
    "-ylabfunc",  # function labels only
    "-nx",        # do not demangle
    "-raw",       # hex words, not assembly
)

CODE_COLUMNS = slice(11, 19)
hex_word_pattern = re.compile(r"[0-9A-Fa-f]{8}")


def run_dump_tool(object_path, tool: str = DEFAULT_TOOL, flags: Sequence[str] = DEFAULT_FLAGS) -> str:
    """Run *tool* on *object_path* and return everything it printed."""
    command = [tool, *flags, str(object_path)]
    log.info("Running %s", " ".join(command))
    try:
        proc = subprocess.run(command, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise DumpToolError(f"could not run {tool}: {exc}") from exc
    if proc.returncode != 0:
        detail = proc.stderr.strip() or "no output on stderr"
        raise DumpToolError(f"{tool} exited with status {proc.returncode}: {detail}")
    return proc.stdout


def is_label(line: str) -> bool:
    return line.rstrip().endswith(":")


def parse_code(line: str, lineno: int) -> int:
    field = line[CODE_COLUMNS]
    if not hex_word_pattern.fullmatch(field):
        raise DumpParseError(lineno, line, "no instruction word in columns 11-18")
    return int(field, 16)


def scan_dump(text: str) -> Dict[str, List[int]]:
    """Return mapping of label -> instruction words for the whole listing."""
    functions: Dict[str, List[int]] = {}
    current = None
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        if is_label(line):
            current = functions.setdefault(line.strip()[:-1], [])
            continue
        if current is None:
            raise DumpParseError(lineno, line, "instruction before any label")
        current.append(parse_code(line, lineno))
    log.debug("Parsed %d functions from dump", len(functions))
    return functions


def select_symbol(functions: Dict[str, List[int]], name: str, source=None) -> List[int]:
    """Pick *name* out of a scanned listing.

    The dump tool may prefix labels, so a label that ends with *name*
    also counts. An exact label wins; several suffix matches are an error.
    """
    if name in functions:
        return functions[name]
    matches = [label for label in functions if label.endswith(name)]
    if not matches:
        raise SymbolNotFoundError(name, source)
    if len(matches) > 1:
        raise AmbiguousSymbolError(name, matches)
    log.debug("Matched %s to label %s", name, matches[0])
    return functions[matches[0]]


def find_symbol(text: str, name: str, source=None) -> List[int]:
    return select_symbol(scan_dump(text), name, source)
