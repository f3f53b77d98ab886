"""Turn PowerPC instruction words into comparable mnemonic text."""
from typing import Iterable, List

import capstone
from capstone import Cs, CS_ARCH_PPC, CS_MODE_32, CS_MODE_BIG_ENDIAN

from .image import WORD

# Operations whose encodings carry a link-time address or offset. Two
# differing instructions that share one of these are not a real mismatch.
ADDRESS_SENSITIVE = (
    "b",     # branches
    "li",    # load immediate
    "lis",   # load immediate shifted
    "stw",   # store word
    "lfs",   # load float single
    "stfs",  # store float single
)


def illegal(code: int) -> str:
    return f"<illegal; found: 0x{code:08X}>"


class Decoder:
    """Capstone-backed decoder for big-endian 32-bit PowerPC (Gekko/Broadway).

    Every word decodes at address 0, so relative branch targets show up
    as offsets and do not depend on where the function was linked.
    Paired-single instructions are decoded unless *paired_singles* is
    false; without them capstone reads those opcodes as AltiVec/VSX.
    """

    def __init__(self, paired_singles: bool = True):
        mode = CS_MODE_32 + CS_MODE_BIG_ENDIAN
        if paired_singles:
            mode += capstone.CS_MODE_PS
        self.md = Cs(CS_ARCH_PPC, mode)
        self.md.detail = False

    def decode(self, code: int) -> str:
        insn = next(self.md.disasm(WORD.pack(code), 0), None)
        if insn is None:
            return illegal(code)
        return f"{insn.mnemonic} {insn.op_str}".strip()

    def decode_all(self, codes: Iterable[int]) -> List[str]:
        return [self.decode(code) for code in codes]


def equivalent_ignoring_relocation(a: str, b: str) -> bool:
    """True if *a* and *b* both mention the same address-sensitive operation.

    This is plain substring matching on the rendered text, so it can
    excuse more than relocations (any text containing "b" matches).
    """
    return any(op in a and op in b for op in ADDRESS_SENSITIVE)
