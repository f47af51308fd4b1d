"""
ROM String Offset Index
=======================

Builds the lookup table that maps every NUL-terminated byte string in a
ROM image to the absolute address where it starts.

The ROM image has no header or structure beyond the convention that it is
a run of NUL-terminated strings (plus whatever binary data sits between
them, which simply becomes more keys that never match anything).

    offset  0x00: 48 45 4C 4C 4F 00     "HELLO\\0"   -> base + 0x00
    offset  0x06: 57 4F 52 4C 44 00     "WORLD\\0"   -> base + 0x06
    offset  0x0C: 00                    "\\0"        -> base + 0x0C

If the same string occurs more than once, the last occurrence wins.

Example
-------
>>> from romdedup.rom import RomStringTable
>>> table = RomStringTable.from_bytes(b"HELLO\\0WORLD\\0", base=0x800000)
>>> hex(table.lookup(b"WORLD\\0"))
'0x800006'
>>> match = table.find_suffix(b"LLO\\0")
>>> hex(match.address)
'0x800002'
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from romdedup.errors import RomImageError

logger = logging.getLogger(__name__)


NUL = b"\x00"


def format_address(address: int) -> str:
    """Format an absolute address the way it is written into assembly."""
    return f"0x{address:x}"


def iter_nul_strings(data: bytes) -> Iterator[tuple[int, bytes]]:
    """
    Split data into NUL-terminated chunks.

    Yields (offset, chunk) pairs where chunk includes its NUL. Bytes after
    the last NUL are not yielded.
    """
    start = 0
    while True:
        end = data.find(NUL, start)
        if end < 0:
            break
        yield start, data[start:end + 1]
        start = end + 1

    if start < len(data):
        logger.debug(f"Ignoring {len(data) - start} trailing bytes without NUL")


# =============================================================================
# Suffix Match Result
# =============================================================================

@dataclass(frozen=True)
class SuffixMatch:
    """
    A string found as the tail of a longer ROM string.

    Attributes:
        rom_string: The ROM string that ends with the searched bytes
        rom_address: Address of the start of rom_string
        skip: Number of leading bytes of rom_string before the suffix
    """
    rom_string: bytes
    rom_address: int
    skip: int

    @property
    def address(self) -> int:
        """Address where the suffix begins."""
        return self.rom_address + self.skip


# =============================================================================
# String Table
# =============================================================================

class RomStringTable:
    """
    Read-only mapping from NUL-terminated byte strings to ROM addresses.

    The table is built once and never modified. Iteration order is the
    order in which each distinct string was first seen in the image.

    Attributes:
        base: Address at which the ROM image is mapped
        size: Number of bytes in the indexed image
    """

    def __init__(self, base: int = 0):
        if base < 0:
            raise RomImageError(f"ROM base address must not be negative ({base})")
        self.base = base
        self.size = 0
        self._addresses: dict[bytes, int] = {}

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_bytes(cls, data: bytes, base: int = 0) -> "RomStringTable":
        """
        Index a ROM image held in memory.

        Args:
            data: Raw ROM image contents
            base: Address at which offset 0 of the image is mapped

        Returns:
            The populated table
        """
        table = cls(base)
        for offset, chunk in iter_nul_strings(data):
            table._addresses[chunk] = base + offset
        table.size = len(data)

        logger.debug(
            f"Indexed {len(table)} strings from {table.size} bytes "
            f"at base {format_address(base)}"
        )
        return table

    @classmethod
    def from_stream(cls, stream: BinaryIO, base: int = 0) -> "RomStringTable":
        """Index a ROM image read from a binary stream."""
        return cls.from_bytes(stream.read(), base)

    @classmethod
    def from_file(cls, path: Union[str, Path], base: int = 0) -> "RomStringTable":
        """
        Index a ROM image file.

        Raises:
            RomImageError: If path is a directory
            OSError: If the file cannot be read
        """
        path = Path(path)
        if path.is_dir():
            raise RomImageError(f"ROM image '{path}' is a directory")

        with open(path, "rb") as f:
            table = cls.from_stream(f, base)
        logger.info(f"Loaded {len(table)} ROM strings from {path}")
        return table

    # =========================================================================
    # Queries
    # =========================================================================

    def lookup(self, data: bytes) -> Optional[int]:
        """Return the address of an exact ROM string, or None."""
        return self._addresses.get(data)

    def find_suffix(self, data: bytes) -> Optional[SuffixMatch]:
        """
        Find a ROM string that ends with data.

        When several ROM strings end with data, the first one in table
        order is returned. Which one that is depends on the image layout,
        so callers must not rely on a particular choice.

        Args:
            data: Bytes to search for, normally ending with NUL

        Returns:
            The match, or None if data is empty or no string ends with it
        """
        if not data:
            return None

        for rom_string, address in self._addresses.items():
            if len(rom_string) > len(data) and rom_string.endswith(data):
                return SuffixMatch(
                    rom_string=rom_string,
                    rom_address=address,
                    skip=len(rom_string) - len(data),
                )
        return None

    def __contains__(self, data: object) -> bool:
        return data in self._addresses

    def __getitem__(self, data: bytes) -> int:
        return self._addresses[data]

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._addresses)

    def __len__(self) -> int:
        return len(self._addresses)

    def __repr__(self) -> str:
        return (
            f"RomStringTable(base={format_address(self.base)}, "
            f"strings={len(self)}, size={self.size})"
        )
