"""
romdedup Command-Line Interface
===============================

- **romdedup**: rewrite an assembly file against a ROM image

The tool is a Click application; errors are reported through
`romdedup.cli.errors.handle_cli_exception`.
"""

__all__ = ["romdedup"]
