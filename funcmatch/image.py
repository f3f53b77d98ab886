"""Read a function's original machine code out of the reference image."""
import logging
import struct
from pathlib import Path
from typing import Iterable, List

import lief

from .errors import AddressError, ExtractionError, InputError
from .symbols import Symbol

log = logging.getLogger(__name__)

# Load address of the retail image the symbol table was made against.
DEFAULT_BASE_ADDRESS = 0x1D1C85C

WORD = struct.Struct(">I")


class AddressMap:
    """Translate virtual addresses to offsets into a raw image buffer."""

    def __init__(self, base_address: int = DEFAULT_BASE_ADDRESS):
        if base_address < 0:
            raise InputError(f"negative base address {base_address}")
        self.base_address = base_address

    def offset(self, address: int) -> int:
        if address < self.base_address:
            raise AddressError(
                f"address 0x{address:08X} is below image base 0x{self.base_address:08X}"
            )
        return address - self.base_address

    def address(self, offset: int) -> int:
        return offset + self.base_address

    def __repr__(self):
        return f"AddressMap(base_address=0x{self.base_address:X})"


def extract_instructions(data: bytes) -> List[int]:
    """Split *data* into big-endian 32-bit instruction words."""
    if len(data) % WORD.size:
        raise ExtractionError(
            f"code length {len(data)} is not a multiple of {WORD.size}"
        )
    return [code for (code,) in WORD.iter_unpack(data)]


def encode_instructions(codes: Iterable[int]) -> bytes:
    return b"".join(WORD.pack(code) for code in codes)


class RawImage:
    """A raw memory dump loaded at a fixed base address."""

    def __init__(self, data: bytes, address_map: AddressMap):
        self.data = bytes(data)
        self.address_map = address_map

    def read(self, symbol: Symbol) -> bytes:
        start = self.address_map.offset(symbol.start)
        end = self.address_map.offset(symbol.end)
        if end > len(self.data):
            raise ExtractionError(
                f"{symbol.name} ends at 0x{symbol.end:08X}, past the end of the "
                f"image (0x{self.address_map.address(len(self.data)):08X})"
            )
        return self.data[start:end]

    def instructions(self, symbol: Symbol) -> List[int]:
        return extract_instructions(self.read(symbol))


class ElfImage:
    """An ELF executable, read through its own segment mapping."""

    def __init__(self, binary):
        self.binary = binary

    def read(self, symbol: Symbol) -> bytes:
        content = bytes(self.binary.get_content_from_virtual_address(symbol.start, symbol.size))
        if len(content) != symbol.size:
            raise ExtractionError(
                f"{symbol.name}: only {len(content)} of {symbol.size} bytes mapped "
                f"at 0x{symbol.start:08X}"
            )
        return content

    def instructions(self, symbol: Symbol) -> List[int]:
        return extract_instructions(self.read(symbol))


def load_image(path, base_address: int = DEFAULT_BASE_ADDRESS, elf: bool = False):
    """Load the reference image at *path*, fully, before any comparison."""
    path = Path(path)
    if elf:
        if not path.is_file():
            raise InputError(f"cannot read image {path}: no such file")
        binary = lief.parse(str(path))
        if binary is None:
            raise InputError(f"could not parse {path} as an executable")
        log.debug("Parsed %s with LIEF", path)
        return ElfImage(binary)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise InputError(f"cannot read image {path}: {exc}") from exc
    log.debug("Read %d bytes from %s (base 0x%08X)", len(data), path, base_address)
    return RawImage(data, AddressMap(base_address))
