"""
Diagnostics protocol for decoupling error reporting from the listing logic.

Access errors, cycle notices and configuration warnings are reported through
this protocol rather than printed directly, so that the traversal engine can
be tested without capturing stderr and so the reporting format lives in one
place. Messages follow the conventional "program: message: reason" layout.
"""

from typing import Protocol

from rich.console import Console
from rich.markup import escape

from constants import PROGRAM_NAME
from core.exceptions import ListingError
from utils import error_console


def quote_path(path: str | None) -> str:
    """Quote a path for use inside a diagnostic message."""
    if path is None:
        return ""
    return "'" + path.replace("'", "'\\''") + "'"


def format_error(error: ListingError) -> str:
    """
    Render an access error as a single diagnostic line (without program name).

    Args:
        error: The error to render.

    Returns:
        str: e.g. "cannot open directory 'x': Permission denied".
    """
    text = error.message
    if error.file_path is not None:
        text = f"{text} {quote_path(error.file_path)}"
    if error.reason:
        text = f"{text}: {error.reason}"
    return text


class Diagnostics(Protocol):
    """
    Protocol for user-facing diagnostics.

    Implementations can print (Rich), record (tests) or discard messages.
    """

    def report(self, error: ListingError) -> None:
        """
        Report a non-fatal access error.

        Args:
            error: The error, carrying the offending path and the system error.
        """

    def warn(self, message: str) -> None:
        """
        Report a warning that does not affect the exit status.

        Args:
            message: The warning text.
        """

    def notice(self, message: str) -> None:
        """
        Report a notice about the listing itself, such as a directory that is
        skipped because it is already being listed.

        Args:
            message: The notice text.
        """


class RichDiagnostics:
    """
    Rich implementation of Diagnostics writing to standard error.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or error_console

    def _emit(self, text: str) -> None:
        self._console.print(
            f"{PROGRAM_NAME}: {escape(text)}", highlight=False, soft_wrap=True
        )

    def report(self, error: ListingError) -> None:
        self._emit(format_error(error))

    def warn(self, message: str) -> None:
        self._emit(message)

    def notice(self, message: str) -> None:
        self._emit(message)


class RecordingDiagnostics:
    """
    Test implementation of Diagnostics that keeps every message.

    Attributes (for test inspection):
        errors: Errors passed to report(), in order.
        warnings: Messages passed to warn(), in order.
        notices: Messages passed to notice(), in order.
    """

    def __init__(self) -> None:
        self.errors: list[ListingError] = []
        self.warnings: list[str] = []
        self.notices: list[str] = []

    def report(self, error: ListingError) -> None:
        self.errors.append(error)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def notice(self, message: str) -> None:
        self.notices.append(message)

    @property
    def messages(self) -> list[str]:
        """Every error rendered as it would be printed, followed by warnings and notices."""
        return (
            [format_error(e) for e in self.errors] + self.warnings + self.notices
        )
