"""
Section-Aware Assembly Scanner
==============================

Makes one pass over compiler-generated assembly, finds string storage in
read-only data sections and replaces every string that is also in ROM with
an absolute address definition.

State Machine
-------------
                 .section .rodata...           .section / .text / ...
    OUTSIDE_RODATA ------------------> IN_RODATA_SECTION -------+
         ^  |                                                   |
         |  | .section .rodata.__FUNCTION__.N,...               |
         |  v                                                   |
         | IN_FUNCTION_SYMBOL_BLOCK                             |
         |  (completed or aborted)                              |
         +------------------------------------------------------+

Each handler takes the current line and returns (next state, reprocess).
When reprocess is set the same line is handed to the next state's handler,
so a state can stop at a line it does not own without reading ahead.

Anchors
-------
GCC section anchors (`.set .LANCHOR0,. + 0`) let code reach objects as
anchor+offset. Moving a string out of such a section would shift those
offsets, so once an anchor appears in a `.rodata` section the rest of that
section is copied unchanged.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional, Union

from romdedup.config import RewriteOptions
from romdedup.errors import SourceLocation, UnexpectedEndOfInputError
from romdedup.rewriter.blocks import (
    ALIGN_RE,
    ANCHOR_DEFINITION_RE,
    ANCHOR_RE,
    FUNCTION_SECTION_RE,
    LABEL_RE,
    NUL_TERMINATED_DIRECTIVES,
    PAYLOAD_RE,
    RODATA_SECTION_RE,
    SECTION_SWITCH_RE,
    SIZE_RE,
    TYPE_RE,
    FunctionStage,
    FunctionSymbolBlock,
    StringLiteralBlock,
)
from romdedup.rewriter.escapes import decode_ascii
from romdedup.rewriter.matcher import (
    RewriteStats,
    StringMatch,
    match_function_symbol,
    match_literal,
    render_resolved,
)
from romdedup.rom import RomStringTable, format_address

logger = logging.getLogger(__name__)


class ScanState(Enum):
    """Scanner states."""
    OUTSIDE_RODATA = auto()
    IN_RODATA_SECTION = auto()
    IN_FUNCTION_SYMBOL_BLOCK = auto()


Transition = tuple[ScanState, bool]


@dataclass
class ScanResult:
    """
    Output of the scan pass.

    Attributes:
        lines: Rewritten assembly lines
        resolved: Label -> absolute address for every resolved block
        stats: Counters for the run
    """
    lines: list[str]
    resolved: dict[str, int] = field(default_factory=dict)
    stats: RewriteStats = field(default_factory=RewriteStats)


class SectionScanner:
    """
    Rewrites string blocks found in read-only data sections.

    A scanner can be reused; every call to scan() starts from a clean state.

    Example:
        >>> table = RomStringTable.from_bytes(b"Hi\\0", base=0x1000)
        >>> result = SectionScanner(table).scan([
        ...     "\\t.section\\t.rodata",
        ...     ".LC0:",
        ...     '\\t.ascii\\t"Hi\\\\000"',
        ...     "\\t.text",
        ... ])
        >>> result.lines[-2]
        '.LC0 = 0x1000'
    """

    def __init__(
        self,
        table: RomStringTable,
        options: Optional[RewriteOptions] = None,
    ):
        self.table = table
        self.options = options or RewriteOptions()
        self._handlers = {
            ScanState.OUTSIDE_RODATA: self._outside_rodata,
            ScanState.IN_RODATA_SECTION: self._in_rodata_section,
            ScanState.IN_FUNCTION_SYMBOL_BLOCK: self._in_function_block,
        }
        self._reset()

    def _reset(self) -> None:
        self._state = ScanState.OUTSIDE_RODATA
        self._output: list[str] = []
        self._resolved: dict[str, int] = {}
        self._stats = RewriteStats()
        self._punted = False
        self._literal: Optional[StringLiteralBlock] = None
        self._function: Optional[FunctionSymbolBlock] = None
        self._location = SourceLocation(self.options.filename, 0)
        self._line = ""

    # =========================================================================
    # Driver
    # =========================================================================

    def scan(self, lines: Iterable[str]) -> ScanResult:
        """
        Rewrite a sequence of assembly lines (without line terminators).

        Returns:
            The rewritten lines and the labels that were resolved

        Raises:
            EscapeSequenceError: If a payload cannot be decoded
            UnexpectedEndOfInputError: If the input ends inside a block
        """
        self._reset()

        for number, line in enumerate(lines, start=1):
            self._location = SourceLocation(self.options.filename, number)
            self._line = line
            reprocess = True
            while reprocess:
                self._state, reprocess = self._handlers[self._state](line)

        self._check_end_of_input()

        return ScanResult(self._output, self._resolved, self._stats)

    def _check_end_of_input(self) -> None:
        block: Union[StringLiteralBlock, FunctionSymbolBlock, None] = (
            self._literal or self._function
        )
        if block is not None:
            raise UnexpectedEndOfInputError(
                block.name, location=self._location, source_line=self._line
            )

    # =========================================================================
    # State Handlers
    # =========================================================================

    def _outside_rodata(self, line: str) -> Transition:
        if FUNCTION_SECTION_RE.match(line):
            return ScanState.IN_FUNCTION_SYMBOL_BLOCK, True

        if RODATA_SECTION_RE.match(line):
            self._output.append(line)
            self._punted = False
            return ScanState.IN_RODATA_SECTION, False

        self._output.append(line)
        return ScanState.OUTSIDE_RODATA, False

    def _in_rodata_section(self, line: str) -> Transition:
        if self._literal is not None:
            payload = PAYLOAD_RE.match(line)
            if payload:
                self._literal.add_payload(line, self._decode_payload(payload, line))
                return ScanState.IN_RODATA_SECTION, False
            self._finish_literal()
            return ScanState.IN_RODATA_SECTION, True

        if SECTION_SWITCH_RE.match(line):
            return ScanState.OUTSIDE_RODATA, True

        if self._punted:
            self._output.append(line)
            return ScanState.IN_RODATA_SECTION, False

        if ANCHOR_RE.match(line):
            logger.debug(f"{self._location}: section anchor, leaving rest of section unchanged")
            self._punted = True
            self._stats.punted_sections += 1
            self._output.append(line)
            return ScanState.IN_RODATA_SECTION, False

        label = LABEL_RE.match(line)
        if label:
            self._literal = StringLiteralBlock(
                label=label.group(1), location=self._location, lines=[line]
            )
            return ScanState.IN_RODATA_SECTION, False

        self._output.append(line)
        return ScanState.IN_RODATA_SECTION, False

    def _in_function_block(self, line: str) -> Transition:
        block = self._function
        if block is None:
            # Entered on the section line itself
            self._function = FunctionSymbolBlock(location=self._location, lines=[line])
            return ScanState.IN_FUNCTION_SYMBOL_BLOCK, False

        stage = block.stage

        if stage is FunctionStage.PAYLOAD:
            if PAYLOAD_RE.match(line):
                return self._abort_function_block("more than one payload line")
            self._finish_function_block()
            return ScanState.OUTSIDE_RODATA, True

        if stage is not FunctionStage.LABEL and ALIGN_RE.match(line):
            block.lines.append(line)
            return ScanState.IN_FUNCTION_SYMBOL_BLOCK, False

        if stage is FunctionStage.SECTION:
            anchor = ANCHOR_DEFINITION_RE.match(line)
            if anchor:
                block.anchor = anchor.group(1)
                return self._accept(block, FunctionStage.ANCHOR, line)

        if stage in (FunctionStage.SECTION, FunctionStage.ANCHOR):
            type_match = TYPE_RE.match(line)
            if not type_match:
                return self._abort_function_block("expected .type directive")
            if type_match.group(2) != "object":
                return self._abort_function_block(f"type is {type_match.group(2)}")
            block.symbol = type_match.group(1)
            return self._accept(block, FunctionStage.TYPE, line)

        if stage is FunctionStage.TYPE:
            size = SIZE_RE.match(line)
            if size and size.group(1) == block.symbol:
                return self._accept(block, FunctionStage.SIZE, line)

        if stage in (FunctionStage.TYPE, FunctionStage.SIZE):
            label = LABEL_RE.match(line)
            if label and label.group(1) == block.symbol:
                return self._accept(block, FunctionStage.LABEL, line)
            return self._abort_function_block(f"expected label {block.symbol}:")

        # FunctionStage.LABEL
        payload = PAYLOAD_RE.match(line)
        if not payload:
            return self._abort_function_block("expected .ascii after label")
        block.raw_bytes = self._decode_payload(payload, line)
        return self._accept(block, FunctionStage.PAYLOAD, line)

    @staticmethod
    def _accept(block: FunctionSymbolBlock, stage: FunctionStage, line: str) -> Transition:
        block.lines.append(line)
        block.stage = stage
        return ScanState.IN_FUNCTION_SYMBOL_BLOCK, False

    # =========================================================================
    # Block Completion
    # =========================================================================

    def _decode_payload(self, payload: re.Match, line: str) -> bytes:
        location = self._location.at_column(payload.start(2) + 1)
        data = decode_ascii(payload.group(2), location, line)
        if payload.group(1) in NUL_TERMINATED_DIRECTIVES:
            data += b"\x00"
        return data

    def _finish_literal(self) -> None:
        block = self._literal
        self._literal = None

        if block.payload_count == 0:
            # Label of something other than a string
            self._output.extend(block.lines)
            return

        match = match_literal(block.raw_bytes, self.table)
        self._emit_block(block, block.label, match)

    def _finish_function_block(self) -> None:
        block = self._function
        self._function = None
        match = match_function_symbol(block.raw_bytes, self.table)
        self._emit_block(block, block.symbol, match, anchor=block.anchor)

    def _abort_function_block(self, reason: str) -> Transition:
        block = self._function
        self._function = None
        logger.debug(f"{block.location}: not a function name block ({reason})")
        self._stats.aborted_function_blocks += 1
        self._output.extend(block.lines)
        return ScanState.OUTSIDE_RODATA, True

    def _emit_block(
        self,
        block: Union[StringLiteralBlock, FunctionSymbolBlock],
        label: str,
        match: Optional[StringMatch],
        anchor: Optional[str] = None,
    ) -> None:
        if match is None:
            logger.debug(f"{block.location}: '{label}' not found in ROM")
            self._stats.unmatched += 1
            self._output.extend(block.lines)
            return

        comment_lines = block.comment_lines(self.options.comment_char)
        self._output.extend(render_resolved(comment_lines, label, match, anchor))
        self._resolved[label] = match.address
        self._stats.record(
            match, block.raw_bytes, function=isinstance(block, FunctionSymbolBlock)
        )
        logger.debug(
            f"{block.location}: '{label}' -> {format_address(match.address)} "
            f"({match.kind.value})"
        )
