"""
GNU Assembler String Escape Decoder
===================================

Decodes the quoted payload of an `.ascii` directive into the exact bytes
the assembler would emit for it.

Escape Sequences
----------------
| Escape     | Byte   | Meaning                          |
|------------|--------|----------------------------------|
| \\"         | 0x22   | Double quote                     |
| \\\\         | 0x5C   | Backslash                        |
| \\a         | 0x07   | Bell                             |
| \\b         | 0x08   | Backspace                        |
| \\e         | 0x1B   | Escape                           |
| \\f         | 0x0C   | Form feed                        |
| \\n         | 0x0A   | Newline                          |
| \\r         | 0x0D   | Carriage return                  |
| \\t         | 0x09   | Tab                              |
| \\v         | 0x0B   | Vertical tab                     |
| \\ooo       | 0-255  | Octal, 1 to 3 digits             |
| \\xHH...    | 0-255  | Hex, every following hex digit   |
| \\XHH...    | 0-255  | Same as \\x                      |

Numeric escapes keep the low 8 bits of their value, as GNU as does.
Anything else after a backslash is an error: a wrong byte would make the
string silently miss its ROM copy.

Example
-------
>>> decode_ascii(r'Hello\\n\\000')
b'Hello\\n\\x00'
"""

import string
from typing import Optional

from romdedup.errors import EscapeSequenceError, SourceLocation


ESCAPE_SEQUENCES = {
    '"': 0x22,
    "\\": 0x5C,
    "a": 0x07,
    "b": 0x08,
    "e": 0x1B,
    "f": 0x0C,
    "n": 0x0A,
    "r": 0x0D,
    "t": 0x09,
    "v": 0x0B,
}

OCTAL_DIGITS = "01234567"


def decode_ascii(
    payload: str,
    location: Optional[SourceLocation] = None,
    source_line: Optional[str] = None,
) -> bytes:
    """
    Decode an `.ascii` payload (without its surrounding quotes).

    Args:
        payload: Escaped payload text
        location: Location of the first payload character, used to point
            errors at the offending escape
        source_line: Full source line, shown in error messages

    Returns:
        The raw bytes denoted by the payload

    Raises:
        EscapeSequenceError: If a backslash sequence cannot be decoded
    """
    out = bytearray()
    pos = 0
    length = len(payload)

    while pos < length:
        char = payload[pos]
        if char != "\\":
            # Files are read as Latin-1; wider characters only come from str callers
            out += char.encode("latin-1" if ord(char) < 0x100 else "utf-8")
            pos += 1
            continue

        escape_start = pos
        pos += 1
        if pos >= length:
            raise _escape_error(
                "backslash at end of string", escape_start, location, source_line
            )

        char = payload[pos]

        if char in ESCAPE_SEQUENCES:
            out.append(ESCAPE_SEQUENCES[char])
            pos += 1

        elif char in OCTAL_DIGITS:
            end = pos
            while end < length and end - pos < 3 and payload[end] in OCTAL_DIGITS:
                end += 1
            out.append(int(payload[pos:end], 8) & 0xFF)
            pos = end

        elif char in "xX":
            end = pos + 1
            while end < length and payload[end] in string.hexdigits:
                end += 1
            if end == pos + 1:
                raise _escape_error(
                    f"expected hexadecimal digits after \\{char}",
                    escape_start, location, source_line,
                )
            out.append(int(payload[pos + 1:end], 16) & 0xFF)
            pos = end

        else:
            raise _escape_error(
                f"unknown escape sequence '\\{char}'",
                escape_start, location, source_line,
            )

    return bytes(out)


def _escape_error(
    message: str,
    offset: int,
    location: Optional[SourceLocation],
    source_line: Optional[str],
) -> EscapeSequenceError:
    """Build an error pointing at the backslash at payload offset."""
    if location is not None and location.column > 0:
        location = location.at_column(location.column + offset)
    return EscapeSequenceError(
        message,
        location=location,
        hint='valid escapes are \\" \\\\ \\a \\b \\e \\f \\n \\r \\t \\v, octal, \\x and \\X',
        source_line=source_line,
    )
