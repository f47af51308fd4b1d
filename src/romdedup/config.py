"""
romdedup Configuration
======================

Run options for the rewriter and the parsing of command-line values.
Configuration comes only from the command line; there are no environment
variables or configuration files.
"""

import re
from dataclasses import dataclass
from pathlib import Path


# Extensions accepted for the assembly input
ASSEMBLY_EXTENSIONS = (".s", ".S", ".asm")

# Files are handled byte-transparently so payload text maps 1:1 to bytes
ASSEMBLY_ENCODING = "latin-1"

# Decimal, 0x-prefixed hex or $-prefixed hex; no sign, no underscores
ADDRESS_RE = re.compile(r"([0-9]+)|(?:0[xX]|\$)([0-9A-Fa-f]+)", re.ASCII)


@dataclass
class RewriteOptions:
    """
    Options for one rewrite run.

    Attributes:
        comment_char: Prefix for inline annotations (ARM GNU as uses '@')
        filename: Name used in error messages for the assembly input
    """

    comment_char: str = "@"
    filename: str = "<input>"

    def __post_init__(self) -> None:
        if not self.comment_char or any(c.isspace() for c in self.comment_char):
            raise ValueError(f"invalid comment character {self.comment_char!r}")


def parse_address(text: str) -> int:
    """
    Parse a ROM base address.

    Accepts decimal ("8388608"), C hexadecimal ("0x800000") and Motorola
    hexadecimal ("$800000"). Signs and digit separators are rejected.

    Raises:
        ValueError: If text is not a non-negative integer literal
    """
    text = text.strip()
    match = ADDRESS_RE.fullmatch(text)
    if not match:
        raise ValueError(f"invalid address literal: {text!r}")

    decimal, hexadecimal = match.groups()
    if decimal is not None:
        return int(decimal, 10)
    return int(hexadecimal, 16)


def is_assembly_path(path: Path) -> bool:
    """Return True if path has an assembly source extension."""
    return path.suffix in ASSEMBLY_EXTENSIONS
