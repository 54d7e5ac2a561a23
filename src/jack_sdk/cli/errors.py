"""
Unified CLI Error Handling
==========================

Provides consistent error reporting and exit codes for the CLI tools.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click


class ExitCode(IntEnum):
    """Standard exit codes for CLI tools."""
    SUCCESS = 0
    BUILD_ERROR = 1      # At least one unit failed to compile
    INVALID_ARGS = 2     # Invalid arguments or missing files
    INTERNAL_ERROR = 3   # Unexpected internal error


def report_error(error: Exception) -> None:
    """Print a compiler or file error to stderr."""
    from jack_sdk.errors import JackError

    if isinstance(error, JackError):
        # Compiler errors carry their own "error:" prefix
        click.echo(str(error), err=True)
    else:
        click.echo(f"Error: {error}", err=True)


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """
    Report `error` and exit with the matching exit code.

    Raises:
        SystemExit: Always
    """
    from jack_sdk.errors import JackError

    if isinstance(error, JackError):
        report_error(error)
        sys.exit(ExitCode.BUILD_ERROR)

    elif isinstance(error, (click.BadParameter, FileNotFoundError, PermissionError)):
        report_error(error)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
