"""
String Matching
===============

Resolves a collected string block against the ROM string table and renders
the lines that replace it.

Matching Strategies
-------------------
1. **Exact**: the decoded bytes (terminating NUL included) are a ROM string.
2. **Suffix** (literal blocks only): the decoded bytes are the tail of a
   longer ROM string, which happens when the compiler merged a literal into
   the end of another one. The address points inside that ROM string:

       ROM:      "HELLO\\0" at 0x800010
       literal:  "LLO\\0"
       address:  0x800010 + (6 - 4) = 0x800012

Function symbols only resolve by exact match.

Replacement Text
----------------
A matched block is kept as comments, followed by the absolute definition:

    @ .LC0:
    @       .ascii  "Hello\\000"
    .LC0 = 0x85f3c8
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from romdedup.rom import RomStringTable, format_address


# =============================================================================
# Match Results
# =============================================================================

class MatchKind(Enum):
    """How a block was resolved."""
    EXACT = "exact"
    SUFFIX = "suffix"


@dataclass(frozen=True)
class StringMatch:
    """
    A resolved string.

    Attributes:
        address: Absolute address of the string in ROM
        kind: Strategy that found it
        rom_string: The ROM string containing the match
    """
    address: int
    kind: MatchKind
    rom_string: bytes

    @property
    def formatted_address(self) -> str:
        return format_address(self.address)


def match_exact(raw_bytes: bytes, table: RomStringTable) -> Optional[StringMatch]:
    """Resolve raw_bytes only if it is a complete ROM string."""
    address = table.lookup(raw_bytes)
    if address is None:
        return None
    return StringMatch(address, MatchKind.EXACT, raw_bytes)


def match_literal(raw_bytes: bytes, table: RomStringTable) -> Optional[StringMatch]:
    """
    Resolve the bytes of a string literal block.

    Tries an exact match first, then a suffix of a longer ROM string. When
    several ROM strings share the suffix, which one is used is unspecified.
    """
    match = match_exact(raw_bytes, table)
    if match is not None:
        return match

    suffix = table.find_suffix(raw_bytes)
    if suffix is None:
        return None
    return StringMatch(suffix.address, MatchKind.SUFFIX, suffix.rom_string)


def match_function_symbol(
    raw_bytes: bytes, table: RomStringTable
) -> Optional[StringMatch]:
    """Resolve the bytes of a function symbol block."""
    return match_exact(raw_bytes, table)


# =============================================================================
# Replacement Rendering
# =============================================================================

def render_resolved(
    comment_lines: list[str],
    label: str,
    match: StringMatch,
    anchor: Optional[str] = None,
) -> list[str]:
    """
    Build the lines that replace a matched block.

    Args:
        comment_lines: The block's original lines as annotations
        label: Symbol the block defined
        match: The resolution
        anchor: Anchor defined at the block, redefined to the same address

    Returns:
        Replacement lines
    """
    address = match.formatted_address
    lines = list(comment_lines)
    if anchor:
        lines.append(f"{anchor} = {address}")
    lines.append(f"{label} = {address}")
    return lines


# =============================================================================
# Statistics
# =============================================================================

@dataclass
class RewriteStats:
    """
    Statistics about one rewrite run.

    Attributes:
        exact_matches: Literal blocks resolved by exact match
        suffix_matches: Literal blocks resolved inside a longer ROM string
        function_matches: Function symbol blocks resolved
        unmatched: Complete blocks whose bytes are not in ROM
        aborted_function_blocks: Function sections that did not fit the grammar
        punted_sections: Rodata sections left alone because of anchors
        references_rewritten: `.word <label>` lines given a numeric address
        bytes_saved: String storage removed from the output
    """
    exact_matches: int = 0
    suffix_matches: int = 0
    function_matches: int = 0
    unmatched: int = 0
    aborted_function_blocks: int = 0
    punted_sections: int = 0
    references_rewritten: int = 0
    bytes_saved: int = 0

    @property
    def total_resolved(self) -> int:
        """Number of blocks replaced by an absolute address."""
        return self.exact_matches + self.suffix_matches + self.function_matches

    def record(self, match: StringMatch, raw_bytes: bytes, function: bool = False) -> None:
        """Count one resolved block."""
        if function:
            self.function_matches += 1
        elif match.kind is MatchKind.SUFFIX:
            self.suffix_matches += 1
        else:
            self.exact_matches += 1
        self.bytes_saved += len(raw_bytes)

    def __str__(self) -> str:
        """Human-readable summary of the run."""
        lines = ["Rewrite Statistics:"]
        if self.exact_matches:
            lines.append(f"  Exact matches: {self.exact_matches}")
        if self.suffix_matches:
            lines.append(f"  Suffix matches: {self.suffix_matches}")
        if self.function_matches:
            lines.append(f"  Function symbols: {self.function_matches}")
        if self.unmatched:
            lines.append(f"  Not in ROM: {self.unmatched}")
        if self.aborted_function_blocks:
            lines.append(f"  Function blocks skipped: {self.aborted_function_blocks}")
        if self.punted_sections:
            lines.append(f"  Anchored sections skipped: {self.punted_sections}")
        if self.references_rewritten:
            lines.append(f"  References rewritten: {self.references_rewritten}")
        lines.append(f"  Total resolved: {self.total_resolved}")
        lines.append(f"  Bytes saved: {self.bytes_saved}")
        return "\n".join(lines)
