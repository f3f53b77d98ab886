"""Shared helpers for building synthetic dump listings."""
import pytest


def dump_line(offset, code):
    # offset field fills columns 0-9, the word sits at columns 11-18
    return f"0x{offset:08X} {code:08X}  ...."


def dump_listing(functions):
    lines = []
    for name, codes in functions:
        lines.append(f"{name}:")
        lines.extend(dump_line(i * 4, code) for i, code in enumerate(codes))
    return "\n".join(lines) + "\n"


@pytest.fixture
def listing():
    return dump_listing
