"""
romdedup Assembly Rewriter
==========================

Finds string storage in GNU-assembler output and replaces every string the
ROM image already holds with an absolute address.

- **escapes**: decodes `.ascii` payloads to raw bytes
- **blocks**: string block types and line patterns
- **matcher**: exact and suffix matching, replacement text, statistics
- **scanner**: the section-aware state machine (first pass)
- **references**: `.word <label>` rewriting (second pass)
- **rewriter**: text- and file-level entry points

Usage:
    from romdedup.rom import RomStringTable
    from romdedup.rewriter import AssemblyRewriter

    table = RomStringTable.from_file("rom.bin", base=0x800000)
    rewritten = AssemblyRewriter(table).rewrite(source_text)
"""

from .escapes import decode_ascii
from .blocks import StringLiteralBlock, FunctionSymbolBlock
from .matcher import (
    MatchKind,
    StringMatch,
    RewriteStats,
    match_literal,
    match_function_symbol,
)
from .scanner import SectionScanner, ScanState, ScanResult
from .references import rewrite_references
from .rewriter import AssemblyRewriter, rewrite_file

__all__ = [
    "decode_ascii",
    "StringLiteralBlock",
    "FunctionSymbolBlock",
    "MatchKind",
    "StringMatch",
    "RewriteStats",
    "match_literal",
    "match_function_symbol",
    "SectionScanner",
    "ScanState",
    "ScanResult",
    "rewrite_references",
    "AssemblyRewriter",
    "rewrite_file",
]
