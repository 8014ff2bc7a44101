"""
Column layout solver.

Given the display widths of a batch of entries, in output order, find the
largest number of columns whose rows fit within the line length. Every
candidate column count from 1 up to the bound is tracked in a single pass
over the entries; a candidate that stops fitting is dropped for good, since
adding entries can only widen its columns.
"""

from dataclasses import dataclass, field

from constants import COLUMN_SEPARATOR_WIDTH, MIN_COLUMN_WIDTH
from core.models import ColumnLayout


@dataclass
class _Candidate:
    """Running state of the layout with a given number of columns."""

    valid: bool
    line_length: int
    widths: list[int] = field(default_factory=list)


def max_columns(entry_count: int, line_length: int) -> int:
    """
    Upper bound on the number of columns worth considering.

    Args:
        entry_count: Number of entries to place.
        line_length: Line length budget.

    Returns:
        int: ceil(line_length / MIN_COLUMN_WIDTH), capped at entry_count.
    """
    max_idx = -(-line_length // MIN_COLUMN_WIDTH)
    return max_idx if 0 < max_idx < entry_count else entry_count


def column_index(entry: int, columns: int, entry_count: int, by_columns: bool) -> int:
    """
    Column that entry number `entry` falls into.

    Args:
        entry: Position of the entry in output order.
        columns: Candidate number of columns.
        entry_count: Total number of entries.
        by_columns: True to fill columns top to bottom, False to fill rows left
            to right.

    Returns:
        int: Zero-based column index.
    """
    if by_columns:
        rows = (entry_count + columns - 1) // columns
        return entry // rows
    return entry % columns


def calculate_columns(
    widths: list[int], line_length: int, by_columns: bool
) -> ColumnLayout:
    """
    Choose the number of columns and their widths.

    Every column but the last of a row is followed by a two-space separator,
    which is counted in its width. A candidate is valid while its total line
    length stays strictly below line_length.

    Args:
        widths: Display width of each entry, in output order.
        line_length: Line length budget; 0 means unlimited and yields one column.
        by_columns: True for column-major placement ("vertical"), False for
            row-major placement ("across").

    Returns:
        ColumnLayout: The largest valid column count with its widths, or a
            single column if no candidate fits.
    """
    entry_count = len(widths)
    if entry_count == 0 or line_length <= 0:
        return ColumnLayout(columns=1, widths=(max(widths, default=0),))

    max_cols = max_columns(entry_count, line_length)
    candidates = [
        _Candidate(
            valid=True,
            line_length=(i + 1) * MIN_COLUMN_WIDTH,
            widths=[MIN_COLUMN_WIDTH] * (i + 1),
        )
        for i in range(max_cols)
    ]

    for entry, name_length in enumerate(widths):
        for i, candidate in enumerate(candidates):
            if not candidate.valid:
                continue
            idx = column_index(entry, i + 1, entry_count, by_columns)
            real_length = name_length + (0 if idx == i else COLUMN_SEPARATOR_WIDTH)
            if candidate.widths[idx] < real_length:
                candidate.line_length += real_length - candidate.widths[idx]
                candidate.widths[idx] = real_length
                candidate.valid = candidate.line_length < line_length

    cols = max_cols
    while cols > 1 and not candidates[cols - 1].valid:
        cols -= 1

    chosen = candidates[cols - 1]
    return ColumnLayout(
        columns=cols,
        widths=tuple(chosen.widths),
        line_length=chosen.line_length,
    )
