"""
romdedup - Command-Line Interface
=================================

Rewrites a compiler-generated assembly file in place so that string
literals already present in a ROM image are taken from ROM instead of being
stored again.

Usage Examples
--------------
Basic run (ROM mapped at 0x800000):
    $ romdedup 0x800000 rom.bin main.s

Decimal base address:
    $ romdedup 8388608 rom.bin main.s

Keep the input and write elsewhere:
    $ romdedup 0x800000 rom.bin main.s -o main.rom.s

Summary and per-string decisions:
    $ romdedup -v --stats 0x800000 rom.bin main.s
"""

import logging
from pathlib import Path
from typing import Optional

import click

from romdedup import __version__
from romdedup.cli.errors import handle_cli_exception
from romdedup.config import ASSEMBLY_EXTENSIONS, is_assembly_path, parse_address
from romdedup.rewriter import rewrite_file


# =============================================================================
# Parameter Types
# =============================================================================

class AddressParamType(click.ParamType):
    """A ROM base address: decimal or 0x-prefixed hexadecimal."""

    name = "address"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return parse_address(value)
        except ValueError:
            self.fail(f"{value!r} is not a valid address", param, ctx)


ADDRESS = AddressParamType()


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def validate_assembly_path(ctx, param, value: Path) -> Path:
    """Reject inputs without an assembly source extension."""
    if not is_assembly_path(value):
        extensions = ", ".join(ASSEMBLY_EXTENSIONS)
        raise click.BadParameter(
            f"'{value}' is not an assembly file (expected {extensions})"
        )
    return value


def validate_comment_char(ctx, param, value: str) -> str:
    """Reject comment prefixes that are empty or contain whitespace."""
    if not value or any(c.isspace() for c in value):
        raise click.BadParameter(f"invalid comment prefix {value!r}")
    return value


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument("rom_base", type=ADDRESS)
@click.argument(
    "rom_image",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "assembly",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    callback=validate_assembly_path,
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the result here instead of overwriting ASSEMBLY",
)
@click.option(
    "-c", "--comment-char",
    default="@",
    show_default=True,
    callback=validate_comment_char,
    help="Inline comment prefix of the target assembler",
)
@click.option(
    "--stats",
    is_flag=True,
    help="Print a summary of resolved strings",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="romdedup")
def main(
    rom_base: int,
    rom_image: Path,
    assembly: Path,
    output: Optional[Path],
    comment_char: str,
    stats: bool,
    verbose: bool,
) -> None:
    """
    Replace ROM-resident strings in an assembly file with ROM addresses.

    ROM_BASE is the address the ROM image is mapped at (decimal or 0x hex).
    ROM_IMAGE is the binary ROM image. ASSEMBLY is the compiler output
    (.s, .S or .asm), rewritten in place unless -o is given.

    \b
    Examples:
        romdedup 0x800000 rom.bin main.s
        romdedup -o out.s 0x800000 rom.bin main.s
    """
    setup_logging(verbose)

    try:
        if verbose:
            click.echo(f"ROM image {rom_image} at 0x{rom_base:x}")
            click.echo(f"Rewriting {assembly}...")

        run_stats = rewrite_file(
            rom_base,
            rom_image,
            assembly,
            output_path=output,
            comment_char=comment_char,
        )

        if stats or verbose:
            click.echo(str(run_stats))

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Rewrite")


if __name__ == "__main__":
    main()
