"""
Label Reference Rewriting
=========================

Second pass over the rewritten assembly. Literal pools in code sections
refer to strings through `.word` directives:

    .L4:
            .word   .LC0

Once .LC0 has become an absolute constant, the reference is replaced with
the address itself, keeping the label as an annotation:

            .word   0x85f3c8        @ .LC0

Only lines consisting of exactly a tab, `.word`, a tab and a resolved label
are touched.
"""

import logging
import re
from typing import Optional

from romdedup.rewriter.blocks import SYMBOL
from romdedup.rewriter.matcher import RewriteStats
from romdedup.rom import format_address

logger = logging.getLogger(__name__)


WORD_REFERENCE_RE = re.compile(rf"^\t\.word\t({SYMBOL})$")


def rewrite_references(
    lines: list[str],
    resolved: dict[str, int],
    comment_char: str = "@",
    stats: Optional[RewriteStats] = None,
) -> list[str]:
    """
    Replace `.word <label>` lines that name a resolved label.

    Args:
        lines: Assembly lines produced by the scan pass
        resolved: Label -> absolute address from the scan pass
        comment_char: Prefix for the label annotation
        stats: Counters to update, if any

    Returns:
        A new list of lines
    """
    if not resolved:
        return list(lines)

    output = []
    count = 0
    for line in lines:
        reference = WORD_REFERENCE_RE.match(line)
        if reference and reference.group(1) in resolved:
            label = reference.group(1)
            address = format_address(resolved[label])
            output.append(f"\t.word\t{address}\t{comment_char} {label}")
            count += 1
        else:
            output.append(line)

    logger.debug(f"Rewrote {count} .word references to {len(resolved)} resolved labels")
    if stats is not None:
        stats.references_rewritten += count
    return output
