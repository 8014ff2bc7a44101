"""
Core data models for the traversal, sorting and layout pipeline.

This module defines the per-entry record produced by the traversal engine, the
reusable batch that holds one directory's records at a time, the pending
directory work items used for recursive listing, the column layout chosen by
the solver, and the escalate-only exit status accumulator.
"""

import os
import stat
from dataclasses import dataclass, field
from typing import Iterator

from constants import MODE_FILE_TYPES
from models import ExitStatus, FileType, QuoteState


def file_type_from_mode(mode: int) -> FileType:
    """
    Map the file-type bits of a stat mode to a FileType.

    Args:
        mode: The st_mode value of a stat result.

    Returns:
        FileType: The matching type, or FileType.UNKNOWN for unrecognized bits.
    """
    return MODE_FILE_TYPES.get(stat.S_IFMT(mode), FileType.UNKNOWN)


@dataclass
class FileRecord:
    """
    Everything known about one listed entry.

    A record starts with the cheap type hint reported by the directory scan (or
    UNKNOWN for command-line arguments) and is promoted once, when metadata is
    fetched, to the confirmed type derived from the stat mode. "Not fetched" is
    recorded explicitly by stat_ok being False.

    Attributes:
        name: The entry name as it appeared in the directory or on the command line.
        type_hint: Cheap, possibly wrong type reported by the directory scan.
        confirmed_type: Authoritative type set after a successful metadata fetch,
            or ARG_DIRECTORY for directories named on the command line.
        stat: The stat result, or None if metadata was not fetched or the fetch failed.
        stat_ok: True once metadata has been fetched successfully.
        link_target: Target of a symbolic link, when it was read.
        link_ok: True if the link target could be stat'ed.
        link_mode: st_mode of the link target, or 0 if unknown.
        width: Cached display width of the quoted name; 0 means "not computed".
        quoted: Cached answer to "does quoting change this name".
    """

    name: str
    type_hint: FileType = FileType.UNKNOWN
    confirmed_type: FileType | None = None
    stat: os.stat_result | None = None
    stat_ok: bool = False
    link_target: str | None = None
    link_ok: bool = False
    link_mode: int = 0
    width: int = 0
    quoted: QuoteState = QuoteState.UNKNOWN

    @property
    def file_type(self) -> FileType:
        """The confirmed type if known, otherwise the scan hint."""
        if self.confirmed_type is not None:
            return self.confirmed_type
        return self.type_hint

    @property
    def mode(self) -> int:
        return self.stat.st_mode if self.stat is not None else 0

    def confirm(self, result: os.stat_result) -> None:
        """
        Record a successful metadata fetch and promote the type hint.

        Args:
            result: The stat (or lstat) result for this entry.
        """
        self.stat = result
        self.stat_ok = True
        self.confirmed_type = file_type_from_mode(result.st_mode)

    def is_directory(self) -> bool:
        return self.file_type in (FileType.DIRECTORY, FileType.ARG_DIRECTORY)

    def is_linked_directory(self) -> bool:
        """True for directories and for symbolic links whose target is a directory."""
        return self.is_directory() or stat.S_ISDIR(self.link_mode)


class FileRecordStore:
    """
    The batch of records for the directory (or argument list) being listed.

    The store is cleared and reused between directories. Records are kept in the
    order they were added, which is the scan order the sort dispatcher starts from.
    """

    def __init__(self) -> None:
        self._records: list[FileRecord] = []

    def append(self, record: FileRecord) -> None:
        self._records.append(record)

    def clear(self) -> None:
        self._records.clear()

    def ordering(self) -> list[FileRecord]:
        """A fresh ordering vector: references to the records in scan order."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self._records)

    def __getitem__(self, index: int) -> FileRecord:
        return self._records[index]


@dataclass(frozen=True)
class ExpandDirectory:
    """
    A directory waiting to be listed.

    Attributes:
        path: Path used to open the directory.
        real_name: Name shown in the header instead of path (the symbolic link's
            target text when the directory was reached through a link).
        command_line_arg: True if the directory was named on the command line.
    """

    path: str
    real_name: str | None = None
    command_line_arg: bool = False


@dataclass(frozen=True)
class PopGuardMarker:
    """
    Marker that releases one cycle guard entry when it is reached.

    It is queued in front of a directory's subdirectories so that the guard
    entry of the parent is released only after all of them have been expanded.

    Attributes:
        real_name: The directory whose guard entry is released.
    """

    real_name: str


PendingDirectory = ExpandDirectory | PopGuardMarker


@dataclass(frozen=True)
class ColumnLayout:
    """
    Result of the column layout solver.

    Attributes:
        columns: Number of columns chosen.
        widths: Width of each column, separator included for all but the last.
        line_length: Total width of the widest row.
    """

    columns: int
    widths: tuple[int, ...] = field(default_factory=tuple)
    line_length: int = 0

    def rows(self, entry_count: int) -> int:
        """Number of rows needed to place entry_count entries in this layout."""
        return -(-entry_count // self.columns)


@dataclass(frozen=True)
class BlockSize:
    """
    Unit in which file sizes and block counts are printed.

    Attributes:
        unit: Bytes per printed unit; amounts are rounded up to whole units.
            Ignored when autoscale is set.
        autoscale: Scale every amount by the largest power of base that keeps
            it short, with a one-letter suffix ("1.5K", "23M").
        base: 1024 or 1000; the power used by autoscale.
        suffix: Text appended to every amount that is not autoscaled, e.g. "K"
            for a unit given as a bare "K".
        grouping: Group thousands with the locale's separator.
    """

    unit: int = 1
    autoscale: bool = False
    base: int = 1024
    suffix: str = ""
    grouping: bool = False


@dataclass(frozen=True)
class TimeFormats:
    """
    strftime formats of the long-format time column.

    Besides the strftime directives, "%N" is replaced by the nanoseconds.

    Attributes:
        old: Format for times more than six months ago or in the future.
        recent: Format for recent times.
    """

    old: str = "%b %e  %Y"
    recent: str = "%b %e %H:%M"


class ExitStatusTracker:
    """
    Escalate-only exit status accumulator.

    Minor problems never downgrade an already serious status.
    """

    def __init__(self) -> None:
        self.status: ExitStatus = ExitStatus.SUCCESS

    def escalate(self, serious: bool) -> None:
        """
        Raise the exit status to minor or serious.

        Args:
            serious: True for serious trouble, False for a minor problem.
        """
        if serious:
            self.status = ExitStatus.SERIOUS_TROUBLE
        elif self.status == ExitStatus.SUCCESS:
            self.status = ExitStatus.MINOR_PROBLEM
