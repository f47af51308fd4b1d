"""
romdedup Error Hierarchy
========================

This module defines the exception hierarchy for romdedup. All exceptions
inherit from RomDedupError, allowing callers to catch every tool error
with a single except clause.

Exception Hierarchy
-------------------
RomDedupError (base)
├── RomImageError - ROM image or base address cannot be used
└── MalformedAssemblyError - assembly input cannot be rewritten
    ├── EscapeSequenceError - undecodable backslash escape in a payload
    └── UnexpectedEndOfInputError - input ends inside a string block

Malformed input is never recoverable: the rewrite of the current file is
abandoned and nothing is written.

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class RomDedupError(Exception):
    """
    Base exception for all romdedup errors.

        try:
            rewrite_file(0x800000, "rom.bin", "main.s")
        except RomDedupError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A location in an assembly file, for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed, 0 when unknown)
    """
    filename: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"

    def at_column(self, column: int) -> "SourceLocation":
        """Return the same line with a different column."""
        return SourceLocation(self.filename, self.line, column)


# =============================================================================
# ROM Image Exceptions
# =============================================================================

class RomImageError(RomDedupError):
    """
    The ROM image or its base address is unusable.

    Raised when:
    - The base address is negative
    - The ROM image path is not a regular file
    """
    pass


# =============================================================================
# Assembly Exceptions
# =============================================================================

class MalformedAssemblyError(RomDedupError):
    """
    Base exception for assembly input that cannot be processed.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            main.s:12:19: error: unknown escape sequence '\\q'
                .ascii  "bad \\q\\000"
                              ^
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            # Tabs would misalign the caret
            shown = self.source_line.expandtabs(1)
            parts.append(f"    {shown}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class EscapeSequenceError(MalformedAssemblyError):
    """
    A backslash sequence in a string payload cannot be decoded.

    A wrong byte would only make a string silently fail to match, so any
    sequence the decoder does not know is rejected instead of guessed.

    Examples:
        - Unknown escape letter: "\\q"
        - Backslash at the end of the payload
        - "\\x" with no hexadecimal digits
    """
    pass


class UnexpectedEndOfInputError(MalformedAssemblyError):
    """
    The assembly ends inside a string block.

    Raised when the last line of the input is a label or payload line of a
    block that is still being collected.
    """

    def __init__(
        self,
        block_name: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.block_name = block_name
        super().__init__(
            f"unexpected end of input inside block '{block_name}'",
            location=location,
            hint="the file looks truncated; regenerate it from the compiler",
            source_line=source_line,
        )
