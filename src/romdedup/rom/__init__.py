"""
ROM Image Indexing
==================

Turns a ROM image into a table of the NUL-terminated strings it holds and
the absolute addresses they live at.

Usage:
    from romdedup.rom import RomStringTable, format_address

    table = RomStringTable.from_file("rom.bin", base=0x800000)
    address = table.lookup(b"Hello\\0")
    if address is not None:
        print(format_address(address))
"""

from .index import (
    RomStringTable,
    SuffixMatch,
    format_address,
    iter_nul_strings,
)

__all__ = [
    "RomStringTable",
    "SuffixMatch",
    "format_address",
    "iter_nul_strings",
]
