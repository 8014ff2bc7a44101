"""
String collation adapters.

Name comparisons go through a Collator so that the sort dispatcher can use
locale-aware ordering and fall back to plain byte order when the locale
cannot compare two names.
"""

import errno
import locale
import os
from typing import Callable, Protocol

from core.exceptions import CollationError


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


class Collator(Protocol):
    """
    Protocol for comparing two file names.
    """

    def compare(self, left: str, right: str) -> int:
        """
        Compare two names.

        Args:
            left: First name.
            right: Second name.

        Returns:
            int: Negative, zero or positive as left sorts before, with or after right.

        Raises:
            CollationError: If the names cannot be compared.
        """


class LocaleCollator:
    """
    Collator using the LC_COLLATE category of the current locale.
    """

    def compare(self, left: str, right: str) -> int:
        try:
            return _sign(locale.strcoll(left, right))
        except (ValueError, UnicodeError, OSError) as e:
            raise CollationError(left, right, original_exception=e) from e


class ByteCollator:
    """
    Collator comparing the file-system encoding of names byte by byte.

    This never fails, and orders names exactly as strcmp would.
    """

    def compare(self, left: str, right: str) -> int:
        left_bytes = os.fsencode(left)
        right_bytes = os.fsencode(right)
        return (left_bytes > right_bytes) - (left_bytes < right_bytes)


class MockCollator:
    """
    Mock implementation of Collator for testing.

    Compares names with a configurable function and can be told to fail,
    allowing tests to exercise the fallback path of the sort dispatcher.
    """

    def __init__(
        self,
        compare_fn: Callable[[str, str], int] | None = None,
        fail_after: int | None = None,
        fail_on: set[str] | None = None,
    ):
        """
        Initialize MockCollator with configurable behavior.

        Args:
            compare_fn: Comparison used for successful calls. Defaults to byte order.
            fail_after: If set, every call after this many successful calls raises
                CollationError.
            fail_on: If set, any comparison involving one of these names raises
                CollationError.

        Attributes (for test inspection):
            compare_calls: List of (left, right) tuples passed to compare(),
                including the ones that failed.
            failures: Number of comparisons that raised.
        """
        self.compare_fn = compare_fn or ByteCollator().compare
        self.fail_after = fail_after
        self.fail_on = fail_on or set()

        self.compare_calls: list[tuple[str, str]] = []
        self.failures = 0

    def compare(self, left: str, right: str) -> int:
        self.compare_calls.append((left, right))
        successful = len(self.compare_calls) - 1 - self.failures
        if (self.fail_after is not None and successful >= self.fail_after) or (
            left in self.fail_on or right in self.fail_on
        ):
            self.failures += 1
            raise CollationError(
                left,
                right,
                original_exception=OSError(errno.EILSEQ, os.strerror(errno.EILSEQ)),
            )
        return self.compare_fn(left, right)
