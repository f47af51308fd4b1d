# =============================================================================
# test_scanner.py - Section Scanner Tests
# =============================================================================
# Tests for the section-aware state machine that finds and replaces string
# blocks.
#
# Test coverage includes:
#   - Literal blocks in .rodata sections (exact and suffix matches)
#   - Labels that are not strings
#   - Section switching
#   - Anchor punting
#   - __FUNCTION__ symbol blocks and their grammar
#   - Malformed input (bad escapes, truncated files)
#
# Note: ROM images here never contain two strings sharing a suffix, since
# the choice between such strings is unspecified.
# =============================================================================

import pytest
from romdedup.config import RewriteOptions
from romdedup.errors import EscapeSequenceError, UnexpectedEndOfInputError
from romdedup.rewriter.scanner import SectionScanner
from romdedup.rom import RomStringTable


BASE = 0x800000


# =============================================================================
# Helper Functions
# =============================================================================

def scan(lines: list[str], rom: bytes = b"", base: int = BASE, **options):
    """Scan lines against a ROM image built from rom."""
    table = RomStringTable.from_bytes(rom, base)
    return SectionScanner(table, RewriteOptions(**options)).scan(lines)


def rodata(*body: str) -> list[str]:
    """Wrap body lines in a .rodata string section followed by code."""
    return [
        '\t.section\t.rodata.str1.4,"aMS",%progbits,1',
        "\t.align\t2",
        *body,
        "\t.text",
        "main:",
        "\tbx\tlr",
    ]


def function_block(
    symbol: str = "__FUNCTION__.5012",
    text: str = "mainloop",
    kind: str = "object",
    anchor: bool = True,
    size: bool = True,
) -> list[str]:
    """Build a __FUNCTION__ section in the shape GCC emits."""
    lines = [f'\t.section\t.rodata.{symbol},"a",%progbits', "\t.align\t2"]
    if anchor:
        lines.append("\t.set\t.LANCHOR3,. + 0")
    lines.append(f"\t.type\t{symbol}, %{kind}")
    if size:
        lines.append(f"\t.size\t{symbol}, {len(text) + 1}")
    lines.append(f"{symbol}:")
    lines.append(f'\t.ascii\t"{text}\\000"')
    return lines


# =============================================================================
# Outside Read-Only Data
# =============================================================================

class TestOutsideRodata:
    """Test that code and writable data are copied unchanged."""

    def test_code_unchanged(self):
        """Labels and strings outside .rodata are not touched."""
        lines = [
            "\t.data",
            "msg:",
            '\t.ascii\t"Hello\\000"',
            "\t.text",
            "main:",
            "\tbx\tlr",
        ]
        result = scan(lines, rom=b"Hello\0")
        assert result.lines == lines
        assert result.resolved == {}

    def test_empty_input(self):
        result = scan([])
        assert result.lines == []


# =============================================================================
# String Literal Blocks
# =============================================================================

class TestLiteralBlocks:
    """Test resolution of anonymous string literals."""

    def test_exact_match(self):
        """A literal found in ROM becomes an absolute definition."""
        rom = b"boot\0Hello\0"
        result = scan(rodata(".LC0:", '\t.ascii\t"Hello\\000"'), rom=rom)

        assert result.lines[2:5] == [
            "@ .LC0:",
            '@ \t.ascii\t"Hello\\000"',
            ".LC0 = 0x800005",
        ]
        assert result.lines[5] == "\t.text"
        assert result.resolved == {".LC0": 0x800005}
        assert result.stats.exact_matches == 1
        assert result.stats.bytes_saved == 6

    def test_multi_line_literal(self):
        """Payload lines are concatenated before matching."""
        text = b"This is part of a string and this particular one spans multiple lines.\n\0"
        rom = b"\0" * 0x5F3C8 + text
        lines = rodata(
            ".LC0:",
            '\t.ascii\t"This is part of a string and this particular one sp"',
            '\t.ascii\t"ans multiple lines.\\012\\000"',
        )
        result = scan(lines, rom=rom)

        assert ".LC0 = 0x85f3c8" in result.lines
        assert result.lines.count("@ .LC0:") == 1
        assert not any(line.startswith("\t.ascii") for line in result.lines)

    def test_suffix_match(self):
        """A literal that ends a longer ROM string points inside it."""
        rom = b"\x55" * 0x0F + b"\0" + b"HELLO\0"
        result = scan(rodata(".LC1:", '\t.ascii\t"LLO\\000"'), rom=rom)

        assert ".LC1 = 0x800012" in result.lines
        assert result.resolved == {".LC1": 0x800012}
        assert result.stats.suffix_matches == 1

    def test_exact_match_preferred_over_suffix(self):
        """A string present on its own is not taken from a longer one."""
        rom = b"HELLO\0LLO\0"
        result = scan(rodata(".LC1:", '\t.ascii\t"LLO\\000"'), rom=rom)
        assert result.resolved == {".LC1": BASE + 6}

    def test_unmatched_literal_unchanged(self):
        """A literal not in ROM is copied verbatim."""
        lines = rodata(".LC0:", '\t.ascii\t"Nowhere\\000"')
        result = scan(lines, rom=b"Hello\0")
        assert result.lines == lines
        assert result.resolved == {}
        assert result.stats.unmatched == 1

    def test_literal_without_nul_not_matched(self):
        """Without its terminator a literal does not equal a ROM string."""
        lines = rodata(".LC0:", '\t.ascii\t"Hello"')
        result = scan(lines, rom=b"Hello\0")
        assert result.lines == lines

    @pytest.mark.parametrize("payload", [
        '\t.string\t"Hi"',
        '\t.asciz\t"Hi"',
    ])
    def test_string_directive_adds_nul(self, payload):
        """.string and .asciz payloads carry an implicit terminator."""
        result = scan(rodata(".LC0:", payload), rom=b"Hi\0")
        assert result.resolved == {".LC0": BASE}

    def test_consecutive_literals(self):
        """Each label starts its own block."""
        rom = b"one\0two\0"
        lines = rodata(
            ".LC0:", '\t.ascii\t"one\\000"',
            "\t.space\t3",
            ".LC1:", '\t.ascii\t"two\\000"',
        )
        result = scan(lines, rom=rom)

        assert result.resolved == {".LC0": BASE, ".LC1": BASE + 4}
        assert "\t.space\t3" in result.lines

    def test_adjacent_labels(self):
        """A label directly after another label ends the first block."""
        lines = rodata(".LC0:", ".LC1:", '\t.ascii\t"x\\000"')
        result = scan(lines, rom=b"x\0")

        assert result.lines[2] == ".LC0:"
        assert result.resolved == {".LC1": BASE}

    def test_custom_comment_char(self):
        """The annotation prefix is configurable."""
        result = scan(
            rodata(".LC0:", '\t.ascii\t"x\\000"'), rom=b"x\0", comment_char="#"
        )
        assert result.lines[2] == "# .LC0:"


class TestNonStringLabels:
    """Test labels in .rodata that do not define strings."""

    def test_word_table_unchanged(self):
        """A label followed by other data is copied verbatim."""
        lines = rodata("table:", "\t.word\t1", "\t.word\t2")
        result = scan(lines, rom=b"x\0")
        assert result.lines == lines

    def test_label_before_section_switch(self):
        """A label ended by a section switch is kept, and the switch applies."""
        lines = [
            "\t.section\t.rodata",
            "empty:",
            "\t.data",
            "var:",
            '\t.ascii\t"x\\000"',
        ]
        result = scan(lines, rom=b"x\0")
        assert result.lines == lines


# =============================================================================
# Section Switching
# =============================================================================

class TestSectionSwitching:
    """Test where .rodata sections begin and end."""

    @pytest.mark.parametrize("directive", [
        '\t.section\t.text.startup,"ax",%progbits',
        "\t.text",
        "\t.data",
        "\t.bss",
        "\t.previous",
        "\t.pushsection\t.data",
        "\t.popsection",
    ])
    def test_switch_ends_rodata(self, directive):
        """Strings after a section switch are not rewritten."""
        lines = [
            "\t.section\t.rodata",
            directive,
            ".LC0:",
            '\t.ascii\t"x\\000"',
        ]
        result = scan(lines, rom=b"x\0")
        assert result.lines == lines

    def test_rodata_reentered(self):
        """A second .rodata section is scanned again."""
        lines = [
            "\t.section\t.rodata",
            "\t.text",
            "\t.section\t.rodata.str1.1",
            ".LC2:",
            '\t.ascii\t"x\\000"',
            "\t.text",
        ]
        result = scan(lines, rom=b"x\0")
        assert result.resolved == {".LC2": BASE}

    def test_rodata_lookalike_section(self):
        """Only .rodata and .rodata.* sections hold strings."""
        lines = [
            "\t.section\t.rodatafoo",
            ".LC0:",
            '\t.ascii\t"x\\000"',
        ]
        result = scan(lines, rom=b"x\0")
        assert result.lines == lines


# =============================================================================
# Anchor Punting
# =============================================================================

class TestAnchorPunt:
    """Test that sections with anchors are left alone from the anchor on."""

    def test_no_rewrite_after_anchor(self):
        """Labels after an anchor are never rewritten."""
        lines = rodata(
            "\t.set\t.LANCHOR0,. + 0",
            ".LC0:",
            '\t.ascii\t"x\\000"',
        )
        result = scan(lines, rom=b"x\0")
        assert result.lines == lines
        assert result.resolved == {}
        assert result.stats.punted_sections == 1

    def test_rewrite_before_anchor(self):
        """Strings before the anchor are still rewritten."""
        lines = rodata(
            ".LC0:", '\t.ascii\t"x\\000"',
            "\t.set\t.LANCHOR0,. + 0",
            ".LC1:", '\t.ascii\t"y\\000"',
        )
        result = scan(lines, rom=b"x\0y\0")
        assert result.resolved == {".LC0": BASE}
        assert '\t.ascii\t"y\\000"' in result.lines

    def test_punt_ends_with_section(self):
        """The next .rodata section is scanned normally."""
        lines = [
            "\t.section\t.rodata",
            "\t.set\t.LANCHOR0,. + 0",
            ".LC0:", '\t.ascii\t"x\\000"',
            "\t.section\t.rodata.str1.4",
            ".LC1:", '\t.ascii\t"x\\000"',
            "\t.text",
        ]
        result = scan(lines, rom=b"x\0")
        assert result.resolved == {".LC1": BASE}

    def test_bad_escape_ignored_after_punt(self):
        """Punted payloads are copied without being decoded."""
        lines = rodata("\t.set\t.LANCHOR1,. + 0", ".LC0:", '\t.ascii\t"\\q"')
        result = scan(lines)
        assert result.lines == lines


# =============================================================================
# Function Symbol Blocks
# =============================================================================

class TestFunctionBlocks:
    """Test __FUNCTION__ name string blocks."""

    def test_resolved_with_anchor(self):
        """A matched block redefines its anchor and its symbol."""
        lines = function_block() + ["\t.text", "main:"]
        result = scan(lines, rom=b"xx\0mainloop\0")

        assert result.lines[:7] == ["@ " + line for line in function_block()]
        assert result.lines[7:9] == [
            ".LANCHOR3 = 0x800003",
            "__FUNCTION__.5012 = 0x800003",
        ]
        assert result.lines[9:] == ["\t.text", "main:"]
        assert result.resolved == {"__FUNCTION__.5012": 0x800003}
        assert result.stats.function_matches == 1

    def test_resolved_without_anchor_or_size(self):
        """The anchor and size lines are optional."""
        lines = function_block(anchor=False, size=False) + ["\t.text"]
        result = scan(lines, rom=b"mainloop\0")

        assert "__FUNCTION__.5012 = 0x800000" in result.lines
        assert not any(" = " in line and "LANCHOR" in line for line in result.lines)

    @pytest.mark.parametrize("align", ["\t.p2align\t2", "\t.balign\t4"])
    def test_other_alignment_directives(self, align):
        """.p2align and .balign are accepted where .align is."""
        lines = [align if line == "\t.align\t2" else line for line in function_block()]
        lines.insert(4, align)
        result = scan(lines + ["\t.text"], rom=b"mainloop\0")

        assert result.resolved == {"__FUNCTION__.5012": BASE}
        assert result.stats.aborted_function_blocks == 0
        assert f"@ {align}" in result.lines

    def test_func_and_pretty_function(self):
        """__func__ and __PRETTY_FUNCTION__ sections are recognized."""
        lines = (
            function_block(symbol="__func__.10", text="f", anchor=False)
            + function_block(symbol="__PRETTY_FUNCTION__.11", text="void f()", anchor=False)
            + ["\t.text"]
        )
        result = scan(lines, rom=b"f\0void f()\0")
        assert result.resolved == {
            "__func__.10": BASE,
            "__PRETTY_FUNCTION__.11": BASE + 2,
        }

    def test_unmatched_block_unchanged(self):
        """A function name not in ROM is copied verbatim."""
        lines = function_block() + ["\t.text"]
        result = scan(lines, rom=b"other\0")
        assert result.lines == lines
        assert result.stats.unmatched == 1

    def test_no_suffix_matching(self):
        """Function names only resolve by exact match."""
        lines = function_block(text="loop") + ["\t.text"]
        result = scan(lines, rom=b"mainloop\0")
        assert result.lines == lines

    def test_non_object_type_aborts(self):
        """Any type other than object leaves the whole block unchanged."""
        lines = function_block(kind="function") + ["\t.text"]
        result = scan(lines, rom=b"mainloop\0")

        assert result.lines == lines
        assert result.resolved == {}
        assert result.stats.aborted_function_blocks == 1

    def test_unexpected_line_aborts(self):
        """A line outside the grammar aborts and is scanned normally."""
        lines = [
            '\t.section\t.rodata.__FUNCTION__.1,"a",%progbits',
            "\t.word\t0",
            "\t.type\t__FUNCTION__.1, %object",
            "__FUNCTION__.1:",
            '\t.ascii\t"f\\000"',
        ]
        result = scan(lines, rom=b"f\0")
        assert result.lines == lines

    def test_label_must_match_type(self):
        """The label must name the object from the .type line."""
        lines = [
            '\t.section\t.rodata.__FUNCTION__.1,"a",%progbits',
            "\t.type\t__FUNCTION__.1, %object",
            "other:",
            '\t.ascii\t"f\\000"',
            "\t.text",
        ]
        result = scan(lines, rom=b"f\0")
        assert result.lines == lines

    def test_second_payload_aborts(self):
        """Exactly one payload line is allowed."""
        lines = function_block(text="a") + ['\t.ascii\t"b\\000"', "\t.text"]
        result = scan(lines, rom=b"a\0")
        assert result.lines == lines

    def test_aborted_block_followed_by_rodata(self):
        """The line that aborts a block can open a .rodata section."""
        lines = [
            '\t.section\t.rodata.__FUNCTION__.1,"a",%progbits',
            "\t.section\t.rodata",
            ".LC0:",
            '\t.ascii\t"f\\000"',
            "\t.text",
        ]
        result = scan(lines, rom=b"f\0")
        assert result.resolved == {".LC0": BASE}
        assert result.lines[0] == lines[0]

    def test_bad_escape_in_function_block(self):
        """Decoding errors in function blocks are fatal."""
        lines = function_block(text="\\q") + ["\t.text"]
        with pytest.raises(EscapeSequenceError):
            scan(lines)


# =============================================================================
# Malformed Input
# =============================================================================

class TestMalformedInput:
    """Test unrecoverable input errors."""

    def test_bad_escape(self):
        """An unknown escape aborts the scan with its location."""
        lines = ["\t.section\t.rodata", ".LC0:", '\t.ascii\t"bad \\q\\000"']
        with pytest.raises(EscapeSequenceError) as exc_info:
            scan(lines + ["\t.text"], filename="main.s")

        location = exc_info.value.location
        assert location.filename == "main.s"
        assert location.line == 3
        assert location.column == 14

    def test_end_after_label(self):
        """Input may not end right after a label in .rodata."""
        with pytest.raises(UnexpectedEndOfInputError) as exc_info:
            scan(["\t.section\t.rodata", ".LC0:"])
        assert exc_info.value.block_name == ".LC0"
        assert exc_info.value.location.line == 2

    def test_end_after_payload(self):
        """Input may not end right after a payload line."""
        with pytest.raises(UnexpectedEndOfInputError):
            scan(["\t.section\t.rodata", ".LC0:", '\t.ascii\t"x\\000"'], rom=b"x\0")

    def test_end_inside_function_block(self):
        """Input may not end inside a function block."""
        with pytest.raises(UnexpectedEndOfInputError):
            scan(function_block(), rom=b"mainloop\0")


# =============================================================================
# Scanner Reuse
# =============================================================================

class TestScannerReuse:
    """Test that each scan starts fresh."""

    def test_state_reset_between_scans(self):
        """A scan that ends inside a punted .rodata section does not leak."""
        table = RomStringTable.from_bytes(b"x\0", BASE)
        scanner = SectionScanner(table)
        literal = [".LC0:", '\t.ascii\t"x\\000"', "\t.text"]

        first = scanner.scan(["\t.section\t.rodata", "\t.set\t.LANCHOR0,. + 0"])
        assert first.stats.punted_sections == 1

        # Starts outside .rodata, so a bare literal is left alone
        second = scanner.scan(literal)
        assert second.lines == literal
        assert second.resolved == {}
        assert second.stats.punted_sections == 0

        # No punt carried over into a fresh .rodata section
        third = scanner.scan(["\t.section\t.rodata", *literal])
        assert third.resolved == {".LC0": BASE}
        assert third.stats.exact_matches == 1
