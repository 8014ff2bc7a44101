"""
General utility functions for the CLI application.
"""

import os
import sys
from typing import TextIO

from rich.console import Console

# Diagnostics and fatal error messages go to stderr; the listing owns stdout.
error_console: Console = Console(stderr=True)


def stream_isatty(stream: TextIO | None = None) -> bool:
    """
    Report whether a stream is attached to a terminal.

    Args:
        stream: The stream to check. Defaults to sys.stdout.

    Returns:
        bool: True if the stream is a terminal, False otherwise or if the
            stream has been detached or closed.
    """
    stream = stream or sys.stdout
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def terminal_width(stream: TextIO | None = None) -> int | None:
    """
    Return the width of the terminal attached to a stream.

    Unlike shutil.get_terminal_size, this does not consult COLUMNS: the
    environment variable is handled by configuration resolution so that an
    invalid value can be reported.

    Args:
        stream: The stream to query. Defaults to sys.stdout.

    Returns:
        The number of columns, or None if the stream is not a terminal or the
        size cannot be determined.
    """
    stream = stream or sys.stdout
    try:
        columns = os.get_terminal_size(stream.fileno()).columns
    except (AttributeError, ValueError, OSError):
        return None
    return columns if columns > 0 else None
