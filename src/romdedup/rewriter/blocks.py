"""
String Block Types and Line Patterns
====================================

Data structures for the two shapes of compiler-emitted string storage the
rewriter recognizes, and the regular expressions that classify assembly
lines.

String Literal Block
--------------------
An anonymous literal in a `.rodata` section:

    .LC0:
            .ascii  "This is part of a string and this particular one sp"
            .ascii  "ans multiple lines.\\012\\000"

Function Symbol Block
---------------------
A named `__FUNCTION__` object in its own section:

            .section        .rodata.__FUNCTION__.5012,"a",%progbits
            .align  2
            .set    .LANCHOR3,. + 0
            .type   __FUNCTION__.5012, %object
            .size   __FUNCTION__.5012, 9
    __FUNCTION__.5012:
            .ascii  "mainloop\\000"
"""

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from romdedup.errors import SourceLocation


# =============================================================================
# Line Patterns
# =============================================================================

SYMBOL = r"[A-Za-z_.$][\w.$]*"

LABEL_RE = re.compile(rf"^\s*({SYMBOL}):\s*$")

# Group 1 is the directive, group 2 the escaped payload
PAYLOAD_RE = re.compile(r'^\s*\.(ascii|asciz|string)\s+"((?:[^"\\]|\\.)*)"\s*$')

FUNCTION_SECTION_RE = re.compile(
    r"^\s*\.section\s+\.rodata\.(?:__FUNCTION__|__func__|__PRETTY_FUNCTION__)\.\d+\s*,"
)
RODATA_SECTION_RE = re.compile(r"^\s*\.section\s+\.rodata\b")

SECTION_SWITCH_RE = re.compile(
    r"^\s*\.(?:section|pushsection|popsection|previous|text|data|bss)\b"
)

ANCHOR_RE = re.compile(r"^\s*\.set\s+\.LANCHOR\d+\s*,")
ANCHOR_DEFINITION_RE = re.compile(rf"^\s*\.set\s+({SYMBOL})\s*,\s*\.\s*\+\s*0\s*$")

TYPE_RE = re.compile(rf"^\s*\.type\s+({SYMBOL})\s*,\s*[%@#]?(\w+)\s*$")
SIZE_RE = re.compile(rf"^\s*\.size\s+({SYMBOL})\s*,\s*(\S+)\s*$")
ALIGN_RE = re.compile(r"^\s*\.(?:align|p2align|balign)\b")

# Directives whose payload gets an implicit terminating NUL
NUL_TERMINATED_DIRECTIVES = frozenset({"asciz", "string"})


def commented(lines: list[str], comment_char: str) -> list[str]:
    """Turn source lines into inline annotations."""
    return [f"{comment_char} {line}" for line in lines]


# =============================================================================
# String Literal Block
# =============================================================================

@dataclass
class StringLiteralBlock:
    """
    A label followed by the payload lines of one string constant.

    Attributes:
        label: Symbol name defined by the label line
        location: Location of the label line
        lines: Verbatim source lines, label line first
        raw_bytes: Concatenation of all decoded payloads
        payload_count: Number of payload lines collected
    """
    label: str
    location: SourceLocation
    lines: list[str] = field(default_factory=list)
    raw_bytes: bytes = b""
    payload_count: int = 0

    @property
    def name(self) -> str:
        return self.label

    def add_payload(self, line: str, data: bytes) -> None:
        """Append one payload line and its decoded bytes."""
        self.lines.append(line)
        self.raw_bytes += data
        self.payload_count += 1

    def comment_lines(self, comment_char: str) -> list[str]:
        return commented(self.lines, comment_char)


# =============================================================================
# Function Symbol Block
# =============================================================================

class FunctionStage(Enum):
    """Grammar position reached while collecting a function symbol block."""
    SECTION = auto()    # Section directive seen
    ANCHOR = auto()     # .set <anchor>,. + 0 seen
    TYPE = auto()       # .type <sym>, %object seen
    SIZE = auto()       # .size <sym>,<n> seen
    LABEL = auto()      # <sym>: seen
    PAYLOAD = auto()    # The one .ascii line seen


@dataclass
class FunctionSymbolBlock:
    """
    A `__FUNCTION__`-style named string object.

    Attributes:
        location: Location of the section line
        stage: Last grammar element accepted
        lines: Verbatim source lines collected so far
        symbol: Object name from the .type line
        anchor: Anchor defined at the object, if any
        raw_bytes: Decoded payload
    """
    location: SourceLocation
    stage: FunctionStage = FunctionStage.SECTION
    lines: list[str] = field(default_factory=list)
    symbol: Optional[str] = None
    anchor: Optional[str] = None
    raw_bytes: bytes = b""

    @property
    def name(self) -> str:
        return self.symbol or "<function section>"

    def comment_lines(self, comment_char: str) -> list[str]:
        return commented(self.lines, comment_char)
