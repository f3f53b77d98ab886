"""Compare a function's original instructions against the rebuilt ones."""
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .decode import Decoder, equivalent_ignoring_relocation
from .symbols import Symbol

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identical:
    pass


@dataclass(frozen=True)
class LengthMismatch:
    at_index: int


@dataclass(frozen=True)
class SemanticMismatch:
    at_index: int
    original_mnemonic: str
    candidate_mnemonic: str


ComparisonResult = Union[Identical, LengthMismatch, SemanticMismatch]


def compare(reference: List[int], candidate: List[int],
            decoder: Optional[Decoder] = None) -> ComparisonResult:
    """Return the first point where *candidate* stops reproducing *reference*.

    Instructions that decode differently but belong to the same
    address-sensitive family are let through. There is no attempt to
    realign after an inserted or missing instruction.
    """
    if reference == candidate:
        return Identical()
    if decoder is None:
        decoder = Decoder()

    for index, code in enumerate(reference):
        if index >= len(candidate):
            return LengthMismatch(index)
        if code == candidate[index]:
            continue
        original = decoder.decode(code)
        rebuilt = decoder.decode(candidate[index])
        if original == rebuilt:
            continue
        if equivalent_ignoring_relocation(original, rebuilt):
            log.debug("%d: ignoring %r vs %r", index, original, rebuilt)
            continue
        return SemanticMismatch(index, original, rebuilt)
    return Identical()


def describe(result: ComparisonResult, symbol: Optional[Symbol] = None) -> str:
    """One-line report for *result*."""
    if isinstance(result, Identical):
        return "identical"
    where = ""
    if symbol is not None:
        address = symbol.start + result.at_index * 4
        where = f" (0x{address:08X})"
    if isinstance(result, LengthMismatch):
        expected = f" of {symbol.instruction_count}" if symbol is not None else ""
        return (f"rebuilt function ends early: instruction {result.at_index}"
                f"{expected}{where} is missing")
    return (f"mismatch at instruction {result.at_index} +0x{result.at_index * 4:X}{where}: "
            f"expected '{result.original_mnemonic}', "
            f"found '{result.candidate_mnemonic}'")


def compare_symbol(symbol: Symbol, image, candidate: List[int],
                   decoder: Optional[Decoder] = None) -> ComparisonResult:
    reference = image.instructions(symbol)
    result = compare(reference, candidate, decoder)
    log.info("%s: %s", symbol.name, describe(result, symbol))
    return result
