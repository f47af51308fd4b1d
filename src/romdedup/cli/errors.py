"""
CLI Error Handling
==================

Maps exceptions to messages and exit codes for the command-line tool.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click


class ExitCode(IntEnum):
    """Exit codes for the romdedup command."""
    SUCCESS = 0
    INPUT_ERROR = 1      # Malformed assembly or unusable ROM image
    INVALID_ARGS = 2     # Invalid arguments, wrong extension or missing files
    INTERNAL_ERROR = 3   # Unexpected internal error
    IO_ERROR = 4         # A file could not be read or written


def handle_cli_exception(
    error: Exception,
    verbose: bool = False,
    error_type: str | None = None
) -> NoReturn:
    """
    Report an exception and exit with the matching exit code.

    Args:
        error: The exception that was raised
        verbose: If True, print full traceback for internal errors
        error_type: Optional prefix for the error message (e.g., "Rewrite")

    Raises:
        SystemExit: Always exits with an appropriate exit code
    """
    from romdedup.errors import MalformedAssemblyError, RomDedupError

    if isinstance(error, MalformedAssemblyError):
        # Already formatted as "file:line:col: error: ..."
        click.echo(str(error), err=True)
        sys.exit(ExitCode.INPUT_ERROR)

    elif isinstance(error, RomDedupError):
        prefix = f"{error_type} error: " if error_type else "Error: "
        click.echo(f"{prefix}{error}", err=True)
        sys.exit(ExitCode.INPUT_ERROR)

    elif isinstance(error, click.BadParameter):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, OSError):
        # FileNotFoundError, PermissionError, IsADirectoryError, ...
        reason = error.strerror or str(error)
        target = f" '{error.filename}'" if error.filename else ""
        click.echo(f"Error: cannot access{target}: {reason}", err=True)
        sys.exit(ExitCode.IO_ERROR)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
