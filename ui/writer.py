"""
Presentation of sorted batches.

ListingWriter renders a batch in the configured format: one name per line,
many per line (filled by columns or by rows, using the column layout solver),
comma-separated, or the long format. Names are quoted, optionally colored and
followed by a type indicator; inode numbers and block counts can be printed
before them. Every write to the output stream goes through write(), which
turns a failing stream into OutputWriteError.
"""

import stat
import time
from typing import Callable, TextIO

from constants import RESET_COLOR_SEQUENCE
from core.columns import calculate_columns
from core.config import ListingConfig
from core.exceptions import OutputWriteError
from core.models import FileRecord
from core.sorting import timestamp_ns
from models import FileType, IndicatorStyle, ListingFormat, QuoteState, TimeType
from ui.colors import ColorPalette
from ui.formatting import (
    device_numbers,
    format_blocks,
    format_group,
    format_inode,
    format_link_count,
    format_mode,
    format_owner,
    format_size,
    format_time,
    format_total,
    is_device,
)
from ui.quoting import NameQuoter
from ui.signals import NoOpSignalCoordinator, SignalCoordinator

_EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class ListingWriter:
    """
    Writes headers, totals and batches of records to the output stream.

    Attributes:
        config: The listing configuration.
        stream: The output stream.
        quoter: Quotes names and measures their width.
        palette: Colors names when color is on.
        signals: Told when color is first used and polled after every name.
    """

    def __init__(
        self,
        config: ListingConfig,
        stream: TextIO,
        quoter: NameQuoter | None = None,
        palette: ColorPalette | None = None,
        signals: SignalCoordinator | None = None,
        clock: Callable[[], int] = time.time_ns,
    ):
        self.config = config
        self.stream = stream
        self.quoter = quoter or NameQuoter(
            config.quoting_style, config.hide_control_chars, config.indicator_style
        )
        self.palette = palette or ColorPalette(config.color_styles)
        self.signals = signals or NoOpSignalCoordinator()
        self._clock = clock
        self._first_header = True
        self._inode_width = 0
        self._block_width = 0
        self._link_count_width = 0
        self._owner_width = 0
        self._group_width = 0
        self._pad_unquoted = False
        self._size_width = 0
        self._major_width = 0
        self._minor_width = 0

    def write(self, text: str) -> None:
        try:
            self.stream.write(text)
        except (OSError, ValueError) as e:
            raise OutputWriteError(original_exception=e) from e

    def flush(self) -> None:
        try:
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise OutputWriteError(original_exception=e) from e

    def measure(self, records: list[FileRecord]) -> None:
        """
        Compute and cache the quoted width of every record.

        When outer quotes are aligned, this also decides for the batch whether
        unquoted names are padded with a leading space.
        """
        some_quoted = False
        for record in records:
            self.quoter.width(record)
            some_quoted = some_quoted or record.quoted == QuoteState.YES
        self._pad_unquoted = self.config.align_outer_quotes and some_quoted

    def name_width(self, record: FileRecord) -> int:
        """Width of a record's quoted name, including any alignment padding."""
        return self.quoter.width(record) + self._padding(record)

    def _padding(self, record: FileRecord) -> int:
        return int(self._pad_unquoted and record.quoted == QuoteState.NO)

    def print_header(self, name: str) -> None:
        """
        Print the "name:" line introducing a directory's listing.

        Every header but the first is preceded by a blank line.

        Args:
            name: The directory name as given or reached.
        """
        if self._first_header:
            self._first_header = False
        else:
            self.write("\n")
        self.write(self.quoter.quote(name, dirname=True) + ":\n")

    def print_total(self, records: list[FileRecord]) -> None:
        total = format_total(records, self.config.block_unit)
        self.write(f"total {total}{self.config.eol}")

    def print_files(self, records: list[FileRecord]) -> None:
        """
        Print a sorted batch in the configured format.

        Args:
            records: The batch, in listing order.
        """
        if not records:
            return
        self._compute_widths(records)

        listing_format = self.config.format
        if listing_format == ListingFormat.LONG:
            now_ns = self._clock()
            for record in records:
                self._print_long(record, now_ns)
                self.write(self.config.eol)
        elif listing_format == ListingFormat.ONE_PER_LINE:
            for record in records:
                self._print_name_and_frills(record)
                self.write(self.config.eol)
        elif listing_format == ListingFormat.WITH_COMMAS:
            self._print_with_separator(records, ",")
        elif not self.config.line_length:
            self._print_with_separator(records, " ")
        elif listing_format == ListingFormat.MANY_PER_LINE:
            self._print_many_per_line(records)
        else:
            self._print_horizontal(records)

    def _compute_widths(self, records: list[FileRecord]) -> None:
        config = self.config
        if config.print_inode:
            self._inode_width = max(len(format_inode(r)) for r in records)
        if config.print_block_size:
            self._block_width = max(
                len(format_blocks(r, config.block_unit)) for r in records
            )
        if config.format != ListingFormat.LONG:
            return

        self._link_count_width = max(len(format_link_count(r)) for r in records)
        if config.print_owner or config.print_author:
            self._owner_width = max(
                len(format_owner(r, config.numeric_ids)) for r in records
            )
        if config.print_group:
            self._group_width = max(
                len(format_group(r, config.numeric_ids)) for r in records
            )
        self._size_width = 0
        self._major_width = 0
        self._minor_width = 0
        for record in records:
            if is_device(record):
                major, minor = device_numbers(record)
                self._major_width = max(self._major_width, len(major))
                self._minor_width = max(self._minor_width, len(minor))
            else:
                self._size_width = max(
                    self._size_width,
                    len(format_size(record, config.size_unit)),
                )
        if self._major_width:
            self._size_width = max(
                self._size_width, self._major_width + 2 + self._minor_width
            )

    def type_indicator(self, stat_ok: bool, mode: int, file_type: FileType) -> str:
        """
        The character appended to a name under the configured indicator style.

        Args:
            stat_ok: Whether mode comes from fetched metadata.
            mode: The stat mode; only consulted when stat_ok is set.
            file_type: The type tag, used when no metadata is available.

        Returns:
            str: One of "/", "@", "|", "=", "*", or "" for no indicator.
        """
        style = self.config.indicator_style
        if style == IndicatorStyle.NONE:
            return ""

        regular = stat.S_ISREG(mode) if stat_ok else file_type == FileType.REGULAR
        if regular:
            if stat_ok and style == IndicatorStyle.CLASSIFY and mode & _EXECUTE_BITS:
                return "*"
            return ""

        if stat_ok:
            directory = stat.S_ISDIR(mode)
        else:
            directory = file_type in (FileType.DIRECTORY, FileType.ARG_DIRECTORY)
        if directory:
            return "/"
        if style == IndicatorStyle.SLASH:
            return ""
        if stat_ok:
            if stat.S_ISLNK(mode):
                return "@"
            if stat.S_ISFIFO(mode):
                return "|"
            if stat.S_ISSOCK(mode):
                return "="
            return ""
        return {
            FileType.SYMLINK: "@",
            FileType.FIFO: "|",
            FileType.SOCKET: "=",
        }.get(file_type, "")

    def _record_indicator(self, record: FileRecord) -> str:
        return self.type_indicator(record.stat_ok, record.mode, record.file_type)

    def frills_length(self, record: FileRecord) -> int:
        """Width of a record's name with its inode, block and indicator frills."""
        config = self.config
        commas = config.format == ListingFormat.WITH_COMMAS
        length = 0
        if config.print_inode:
            length += 1 + (len(format_inode(record)) if commas else self._inode_width)
        if config.print_block_size:
            blocks = format_blocks(record, config.block_unit)
            length += 1 + (len(blocks) if commas else self._block_width)
        length += self.name_width(record)
        return length + len(self._record_indicator(record))

    def _start_color(self) -> None:
        if not self.signals.color_used:
            self.signals.activate()
            self.write(RESET_COLOR_SEQUENCE)

    def _print_name(self, record: FileRecord, symlink_target: bool = False) -> None:
        name = record.link_target if symlink_target else record.name
        text = self.quoter.quote(name or "")
        # The pad goes before the color, and link targets are never padded.
        if not symlink_target and self._pad_unquoted:
            self.quoter.width(record)
            self.write(" " * self._padding(record))
        if self.config.print_with_color:
            indicator = self.palette.indicator_for(record, symlink_target)
            if indicator is not None:
                self._start_color()
                text = self.palette.paint(indicator, text)
        self.write(text)
        self.signals.process_pending()

    def _print_name_and_frills(self, record: FileRecord) -> None:
        config = self.config
        commas = config.format == ListingFormat.WITH_COMMAS
        if config.print_inode:
            width = 0 if commas else self._inode_width
            self.write(format_inode(record).rjust(width) + " ")
        if config.print_block_size:
            width = 0 if commas else self._block_width
            self.write(format_blocks(record, config.block_unit).rjust(width) + " ")
        self._print_name(record)
        self.write(self._record_indicator(record))

    def _indent(self, start: int, end: int) -> None:
        """Advance from column start to column end with tabs and spaces."""
        tabsize = self.config.tabsize
        padding = []
        while start < end:
            if tabsize and end // tabsize > (start + 1) // tabsize:
                padding.append("\t")
                start += tabsize - start % tabsize
            else:
                padding.append(" ")
                start += 1
        self.write("".join(padding))

    def _print_many_per_line(self, records: list[FileRecord]) -> None:
        lengths = [self.frills_length(r) for r in records]
        layout = calculate_columns(lengths, self.config.line_length, by_columns=True)
        rows = layout.rows(len(records))

        for row in range(rows):
            col = 0
            index = row
            pos = 0
            while True:
                self._print_name_and_frills(records[index])
                column_width = layout.widths[col]
                col += 1
                next_index = index + rows
                if next_index >= len(records):
                    break
                self._indent(pos + lengths[index], pos + column_width)
                pos += column_width
                index = next_index
            self.write("\n")

    def _print_horizontal(self, records: list[FileRecord]) -> None:
        lengths = [self.frills_length(r) for r in records]
        layout = calculate_columns(lengths, self.config.line_length, by_columns=False)

        pos = 0
        self._print_name_and_frills(records[0])
        name_length = lengths[0]
        column_width = layout.widths[0]
        for index in range(1, len(records)):
            col = index % layout.columns
            if col == 0:
                self.write("\n")
                pos = 0
            else:
                self._indent(pos + name_length, pos + column_width)
                pos += column_width
            self._print_name_and_frills(records[index])
            name_length = lengths[index]
            column_width = layout.widths[col]
        self.write("\n")

    def _print_with_separator(self, records: list[FileRecord], separator: str) -> None:
        line_length = self.config.line_length
        pos = 0
        for index, record in enumerate(records):
            length = self.frills_length(record) if line_length else 0
            if index:
                if not line_length or pos + length + 2 < line_length:
                    pos += 2
                    self.write(separator + " ")
                else:
                    pos = 0
                    self.write(separator + "\n")
            self._print_name_and_frills(record)
            pos += length
        self.write("\n")

    def _format_time(self, record: FileRecord, now_ns: int) -> str:
        if not record.stat_ok:
            return format_time(None, now_ns, self.config.time_formats)
        timestamp = timestamp_ns(record, self.config.time_type)
        if timestamp < 0 and self.config.time_type == TimeType.BTIME:
            return format_time(None, now_ns, self.config.time_formats)
        return format_time(timestamp, now_ns, self.config.time_formats)

    def _format_size_column(self, record: FileRecord) -> str:
        if is_device(record):
            major, minor = device_numbers(record)
            text = f"{major.rjust(self._major_width)}, {minor.rjust(self._minor_width)}"
        else:
            text = format_size(record, self.config.size_unit)
        return text.rjust(self._size_width)

    def _print_long(self, record: FileRecord, now_ns: int) -> None:
        config = self.config
        parts = []
        if config.print_inode:
            parts.append(format_inode(record).rjust(self._inode_width) + " ")
        if config.print_block_size:
            blocks = format_blocks(record, config.block_unit)
            parts.append(blocks.rjust(self._block_width) + " ")
        parts.append(format_mode(record) + " ")
        parts.append(format_link_count(record).rjust(self._link_count_width) + " ")
        owner = format_owner(record, config.numeric_ids).ljust(self._owner_width) + " "
        if config.print_owner:
            parts.append(owner)
        if config.print_group:
            group = format_group(record, config.numeric_ids)
            parts.append(group.ljust(self._group_width) + " ")
        # The author is the owner on this platform.
        if config.print_author:
            parts.append(owner)
        parts.append(self._format_size_column(record) + " ")
        parts.append(self._format_time(record, now_ns) + " ")
        self.write("".join(parts))

        self._print_name(record)
        if record.file_type == FileType.SYMLINK:
            if record.link_target is not None:
                self.write(" -> ")
                self._print_name(record, symlink_target=True)
                if config.indicator_style != IndicatorStyle.NONE:
                    self.write(
                        self.type_indicator(True, record.link_mode, FileType.UNKNOWN)
                    )
        else:
            self.write(self._record_indicator(record))
