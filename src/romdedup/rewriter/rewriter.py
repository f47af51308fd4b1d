"""
Assembly Rewriter
=================

Ties the scan pass and the reference pass together, and provides the
file-level flow used by the command-line tool.

Usage
-----
>>> from romdedup.rom import RomStringTable
>>> from romdedup.rewriter import AssemblyRewriter
>>> table = RomStringTable.from_file("rom.bin", base=0x800000)
>>> rewriter = AssemblyRewriter(table)
>>> text = rewriter.rewrite(open("main.s", encoding="latin-1").read())
>>> print(rewriter.stats)

Or in one call:

>>> from romdedup.rewriter import rewrite_file
>>> stats = rewrite_file(0x800000, "rom.bin", "main.s")
"""

import logging
from pathlib import Path
from typing import Optional, Union

from romdedup.config import ASSEMBLY_ENCODING, RewriteOptions
from romdedup.rewriter.matcher import RewriteStats
from romdedup.rewriter.references import rewrite_references
from romdedup.rewriter.scanner import SectionScanner
from romdedup.rom import RomStringTable

logger = logging.getLogger(__name__)


class AssemblyRewriter:
    """
    Replaces ROM-resident strings in assembly text with absolute addresses.

    Attributes:
        table: ROM strings to match against
        options: Comment character and filename for messages
        stats: Statistics of the most recent rewrite
        resolved: Labels resolved by the most recent rewrite
    """

    def __init__(
        self,
        table: RomStringTable,
        options: Optional[RewriteOptions] = None,
    ):
        self.table = table
        self.options = options or RewriteOptions()
        self.stats = RewriteStats()
        self.resolved: dict[str, int] = {}

    def rewrite_lines(self, lines: list[str]) -> list[str]:
        """
        Rewrite assembly lines (without line terminators).

        The input is scanned completely before the reference pass runs, so
        an error leaves no partial result behind.
        """
        scanner = SectionScanner(self.table, self.options)
        result = scanner.scan(lines)

        output = rewrite_references(
            result.lines,
            result.resolved,
            comment_char=self.options.comment_char,
            stats=result.stats,
        )

        self.stats = result.stats
        self.resolved = result.resolved
        return output

    def rewrite(self, text: str) -> str:
        """
        Rewrite assembly source text, keeping a trailing newline if present.

        CRLF and lone CR line endings are normalized to LF.
        """
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        # Not splitlines(): form feeds and other Latin-1 breaks are line content
        lines = text.split("\n")
        trailer = ""
        if lines[-1] == "":
            lines.pop()
            trailer = "\n"

        output = self.rewrite_lines(lines)
        if not output:
            return ""
        return "\n".join(output) + trailer


def rewrite_file(
    rom_base: int,
    rom_path: Union[str, Path],
    asm_path: Union[str, Path],
    output_path: Union[str, Path, None] = None,
    comment_char: str = "@",
) -> RewriteStats:
    """
    Rewrite an assembly file against a ROM image.

    The output is written only after the whole file has been rewritten in
    memory, so a malformed input never leaves a half-written file.

    Args:
        rom_base: Address at which the ROM image is mapped
        rom_path: ROM image file
        asm_path: Assembly file to rewrite
        output_path: Destination (default: overwrite asm_path)
        comment_char: Prefix for inline annotations

    Returns:
        Statistics for the run

    Raises:
        RomDedupError: On malformed input or an unusable ROM image
        OSError: If a file cannot be read or written
    """
    asm_path = Path(asm_path)
    output_path = Path(output_path) if output_path is not None else asm_path

    table = RomStringTable.from_file(rom_path, base=rom_base)
    source = asm_path.read_text(encoding=ASSEMBLY_ENCODING)

    rewriter = AssemblyRewriter(
        table, RewriteOptions(comment_char=comment_char, filename=str(asm_path))
    )
    rewritten = rewriter.rewrite(source)

    output_path.write_text(rewritten, encoding=ASSEMBLY_ENCODING, newline="\n")
    logger.info(
        f"Rewrote {output_path}: {rewriter.stats.total_resolved} strings resolved, "
        f"{rewriter.stats.bytes_saved} bytes saved"
    )
    return rewriter.stats
