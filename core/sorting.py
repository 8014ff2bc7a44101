"""
Multi-key sort dispatcher.

Orders the records of a batch by the configured key, direction and directory
grouping. Name comparisons go through a locale collator; if the collator fails
on any comparison, the partial result is discarded and the whole batch is
sorted again from scan order with byte-wise comparison.

Key comparators take the two records and a name comparison function, so the
same key can run with either the locale or the byte-wise comparison. Every key
except version breaks ties by name.
"""

import functools
from typing import Callable

from adapters.collation import ByteCollator, Collator
from core.config import ListingConfig
from core.exceptions import CollationError
from core.filevercmp import filevercmp
from core.models import FileRecord
from models import SortKey, TimeType

NameCompare = Callable[[str, str], int]
KeyCompare = Callable[[FileRecord, FileRecord, NameCompare], int]
WidthFunction = Callable[[FileRecord], int]


def _cmp(left: int, right: int) -> int:
    return (left > right) - (left < right)


def timestamp_ns(record: FileRecord, time_type: TimeType) -> int:
    """
    The selected timestamp of a record, in nanoseconds.

    Records without metadata count as time 0. Birth time counts as -1 where
    the platform does not report it.

    Args:
        record: The record.
        time_type: Which timestamp to read.

    Returns:
        int: Nanoseconds since the epoch.
    """
    st = record.stat
    if st is None:
        return 0
    if time_type == TimeType.CTIME:
        return st.st_ctime_ns
    if time_type == TimeType.ATIME:
        return st.st_atime_ns
    if time_type == TimeType.BTIME:
        birth_ns = getattr(st, "st_birthtime_ns", None)
        if birth_ns is not None:
            return birth_ns
        birth = getattr(st, "st_birthtime", None)
        return int(birth * 1_000_000_000) if birth is not None else -1
    return st.st_mtime_ns


def compare_name(a: FileRecord, b: FileRecord, cmp: NameCompare) -> int:
    return cmp(a.name, b.name)


def compare_size(a: FileRecord, b: FileRecord, cmp: NameCompare) -> int:
    """Larger files first, then by name."""
    a_size = a.stat.st_size if a.stat is not None else 0
    b_size = b.stat.st_size if b.stat is not None else 0
    return _cmp(b_size, a_size) or cmp(a.name, b.name)


def time_comparator(time_type: TimeType) -> KeyCompare:
    """Build a comparator ordering newest first, then by name."""

    def compare_time(a: FileRecord, b: FileRecord, cmp: NameCompare) -> int:
        return _cmp(timestamp_ns(b, time_type), timestamp_ns(a, time_type)) or cmp(
            a.name, b.name
        )

    return compare_time


def extension_of(name: str) -> str:
    """The text from the last '.' on, or "" if the name has no '.'."""
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def compare_extension(a: FileRecord, b: FileRecord, cmp: NameCompare) -> int:
    """Names without an extension first, then by extension, then by name."""
    return cmp(extension_of(a.name), extension_of(b.name)) or cmp(a.name, b.name)


def width_comparator(width_of: WidthFunction) -> KeyCompare:
    """Build a comparator ordering narrower names first, then by name."""

    def compare_width(a: FileRecord, b: FileRecord, cmp: NameCompare) -> int:
        return _cmp(width_of(a), width_of(b)) or cmp(a.name, b.name)

    return compare_width


def compare_version(a: FileRecord, b: FileRecord, cmp: NameCompare) -> int:
    """Natural version order, then plain byte order; never collated."""
    return filevercmp(a.name, b.name) or ByteCollator().compare(a.name, b.name)


def _cached_width(record: FileRecord) -> int:
    return record.width


class SortDispatcher:
    """
    Orders batches of records according to a listing configuration.

    Attributes:
        collator: Locale-aware name comparison, tried first.
        fallback: Byte-wise name comparison used after a collation failure.
        fallback_used: True if the last sort had to be redone with the fallback.
    """

    def __init__(
        self,
        config: ListingConfig,
        collator: Collator,
        fallback: Collator | None = None,
        width_of: WidthFunction | None = None,
    ):
        self.config = config
        self.collator = collator
        self.fallback = fallback or ByteCollator()
        self.width_of = width_of or _cached_width
        self.fallback_used = False

    def key_comparator(self) -> KeyCompare:
        """The comparator for the configured primary key."""
        key = self.config.sort_key
        if key == SortKey.SIZE:
            return compare_size
        if key == SortKey.TIME:
            return time_comparator(self.config.time_type)
        if key == SortKey.EXTENSION:
            return compare_extension
        if key == SortKey.WIDTH:
            return width_comparator(self.width_of)
        if key == SortKey.VERSION:
            return compare_version
        return compare_name

    def record_comparator(
        self, name_compare: NameCompare
    ) -> Callable[[FileRecord, FileRecord], int]:
        """
        Combine key, direction and directory grouping into one comparison.

        Reversal swaps the operands of the key comparison; directory grouping
        is applied outside it, so directories stay first in both directions.

        Args:
            name_compare: Name comparison passed to the key comparator.

        Returns:
            A two-argument comparison suitable for functools.cmp_to_key.
        """
        key_compare = self.key_comparator()
        reverse = self.config.reverse
        directories_first = self.config.directories_first

        def compare(a: FileRecord, b: FileRecord) -> int:
            if directories_first:
                diff = int(b.is_linked_directory()) - int(a.is_linked_directory())
                if diff:
                    return diff
            if reverse:
                return key_compare(b, a, name_compare)
            return key_compare(a, b, name_compare)

        return compare

    def _sorted(
        self, records: list[FileRecord], name_compare: NameCompare
    ) -> list[FileRecord]:
        compare = self.record_comparator(name_compare)
        return sorted(records, key=functools.cmp_to_key(compare))

    def sort(self, records: list[FileRecord]) -> list[FileRecord]:
        """
        Return a new ordering vector for records.

        The input list (scan order) is never modified, so a failed collated sort
        can be restarted from it.

        Args:
            records: The batch in scan order.

        Returns:
            list[FileRecord]: The same records in listing order. With SortKey.NONE
                the scan order is kept, even when directories are grouped first.

        Raises:
            CollationError: If the byte-wise retry fails too.
        """
        self.fallback_used = False
        if self.config.sort_key == SortKey.NONE:
            return list(records)

        try:
            return self._sorted(records, self.collator.compare)
        except CollationError:
            self.fallback_used = True
            return self._sorted(records, self.fallback.compare)
