"""
romdedup - ROM String Deduplication for GNU Assembler Output
============================================================

Firmware for a device with a mask-programmed or flashed ROM often carries
string literals that the ROM image already contains. romdedup post-processes
the compiler's assembly output: every read-only string literal (and every
`__FUNCTION__`-style name string) whose bytes, terminating NUL included,
appear in the ROM image is deleted and its label is redefined as the ROM
address of that copy.

Main Components
---------------
- **rom**: ROM image indexing
    Maps each NUL-terminated string in the image to its absolute address

- **rewriter**: Assembly rewriting
    Section-aware scanner, string matching and `.word` reference rewriting

- **cli**: The `romdedup` command

Quick Start
-----------
    >>> from romdedup import rewrite_file
    >>> stats = rewrite_file(0x800000, "rom.bin", "main.s")
    >>> print(stats)

Or from the command line:
    $ romdedup 0x800000 rom.bin main.s
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from romdedup.config import RewriteOptions, parse_address
from romdedup.errors import (
    RomDedupError,
    RomImageError,
    MalformedAssemblyError,
    EscapeSequenceError,
    UnexpectedEndOfInputError,
    SourceLocation,
)
from romdedup.rom import RomStringTable, format_address
from romdedup.rewriter import (
    AssemblyRewriter,
    RewriteStats,
    SectionScanner,
    decode_ascii,
    rewrite_file,
    rewrite_references,
)

__all__ = [
    "__version__",
    # Configuration
    "RewriteOptions",
    "parse_address",
    # Exception hierarchy
    "RomDedupError",
    "RomImageError",
    "MalformedAssemblyError",
    "EscapeSequenceError",
    "UnexpectedEndOfInputError",
    "SourceLocation",
    # ROM indexing
    "RomStringTable",
    "format_address",
    # Rewriting
    "AssemblyRewriter",
    "RewriteStats",
    "SectionScanner",
    "decode_ascii",
    "rewrite_file",
    "rewrite_references",
]
