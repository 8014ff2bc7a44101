"""
Listing configuration.

Command-line options are collected into a ListingOptions value and resolved
exactly once, before any traversal begins, into an immutable ListingConfig
snapshot. Resolution fills in the defaults that depend on the terminal and on
the COLUMNS and TABSIZE environment variables, and derives the predicates the
traversal engine uses to decide which metadata it must fetch.
"""

import re
from dataclasses import dataclass, field
from typing import Mapping

from constants import (
    DEFAULT_COLOR_STYLES,
    DEFAULT_LINE_LENGTH,
    DEFAULT_TAB_SIZE,
    MIN_COLUMN_WIDTH,
    OUTPUT_BLOCK_SIZE,
    TIME_STYLES,
)
from core.models import BlockSize, TimeFormats
from models import (
    ColorIndicator,
    DereferencePolicy,
    IgnoreMode,
    IndicatorStyle,
    ListingFormat,
    QuotingStyle,
    SortKey,
    TimeType,
    WhenMode,
)
from ui.diagnostics import Diagnostics


@dataclass
class ListingOptions:
    """
    Raw option values as given on the command line.

    None means "not given"; resolve_config decides the default.
    """

    paths: list[str] = field(default_factory=list)
    ignore_mode: IgnoreMode = IgnoreMode.DEFAULT
    ignore_patterns: list[str] = field(default_factory=list)
    hide_patterns: list[str] = field(default_factory=list)
    immediate_dirs: bool = False
    recursive: bool = False
    format: ListingFormat | None = None
    width: int | None = None
    tabsize: int | None = None
    reverse: bool = False
    sort_key: SortKey | None = None
    time_type: TimeType | None = None
    directories_first: bool = False
    dereference: DereferencePolicy | None = None
    print_inode: bool = False
    print_block_size: bool = False
    human_readable: bool = False
    si: bool = False
    kibibytes: bool = False
    block_size: BlockSize | None = None
    numeric_ids: bool = False
    print_owner: bool = True
    print_group: bool = True
    print_author: bool = False
    time_style: str | None = None
    indicator_style: IndicatorStyle = IndicatorStyle.NONE
    quoting_style: QuotingStyle | None = None
    hide_control_chars: bool | None = None
    color: WhenMode = WhenMode.NEVER
    zero: bool = False


@dataclass(frozen=True)
class ListingConfig:
    """
    Immutable configuration snapshot for one run.

    Attributes:
        size_unit: Unit of the size column of long listings.
        block_unit: Unit of block counts (-s) and of the "total" line.
        time_formats: Formats of the long-format time column.
        check_symlink_mode: Whether the mode of every symbolic link's target must
            be fetched (for directory grouping or orphan coloring).
        eol: Terminator of each output line of one-per-line and long listings.
        color_styles: Style definition per color indicator; only consulted when
            print_with_color is set.
    """

    ignore_mode: IgnoreMode = IgnoreMode.DEFAULT
    ignore_patterns: tuple[str, ...] = ()
    hide_patterns: tuple[str, ...] = ()
    immediate_dirs: bool = False
    recursive: bool = False
    format: ListingFormat = ListingFormat.ONE_PER_LINE
    line_length: int = DEFAULT_LINE_LENGTH
    tabsize: int = DEFAULT_TAB_SIZE
    sort_key: SortKey = SortKey.NAME
    reverse: bool = False
    time_type: TimeType = TimeType.MTIME
    directories_first: bool = False
    dereference: DereferencePolicy = DereferencePolicy.COMMAND_LINE_SYMLINK_TO_DIR
    print_inode: bool = False
    print_block_size: bool = False
    size_unit: BlockSize = BlockSize()
    block_unit: BlockSize = BlockSize(unit=OUTPUT_BLOCK_SIZE)
    numeric_ids: bool = False
    print_owner: bool = True
    print_group: bool = True
    print_author: bool = False
    time_formats: TimeFormats = TimeFormats()
    indicator_style: IndicatorStyle = IndicatorStyle.NONE
    quoting_style: QuotingStyle = QuotingStyle.LITERAL
    hide_control_chars: bool = False
    print_with_color: bool = False
    check_symlink_mode: bool = False
    eol: str = "\n"
    color_styles: Mapping[ColorIndicator, str | None] = field(
        default_factory=lambda: dict(DEFAULT_COLOR_STYLES)
    )

    def is_colored(self, indicator: ColorIndicator) -> bool:
        """True if color is on and the indicator has a style."""
        return self.print_with_color and bool(self.color_styles.get(indicator))

    @property
    def requires_stat(self) -> bool:
        """Whether every entry needs its metadata, whatever its type."""
        return (
            self.sort_key in (SortKey.TIME, SortKey.SIZE)
            or self.format == ListingFormat.LONG
            or self.print_block_size
        )

    @property
    def requires_type(self) -> bool:
        """Whether every entry needs a known type, fetched if the scan gave none."""
        return not self.requires_stat and (
            self.recursive
            or self.print_with_color
            or self.directories_first
            or self.indicator_style != IndicatorStyle.NONE
        )

    @property
    def max_column_candidates(self) -> int:
        """Upper bound on column counts considered by the layout solver."""
        return -(-self.line_length // MIN_COLUMN_WIDTH)

    @property
    def multi_column(self) -> bool:
        return self.format in (ListingFormat.MANY_PER_LINE, ListingFormat.HORIZONTAL)

    @property
    def align_outer_quotes(self) -> bool:
        """
        Whether unquoted names get a leading space when some names are quoted.

        Only styles that quote some names but not others need this, and only
        when names are aligned in columns.
        """
        aligned = self.format == ListingFormat.LONG or (
            self.multi_column and self.line_length > 0
        )
        return aligned and self.quoting_style in (
            QuotingStyle.SHELL,
            QuotingStyle.SHELL_ESCAPE,
        )


def _parse_non_negative(value: str) -> int | None:
    """Parse a decimal, octal (0 prefix) or hex (0x prefix) non-negative integer."""
    text = value.strip()
    if not text or text[0] in "+-":
        return None
    try:
        if text.lower().startswith("0x"):
            return int(text[2:], 16)
        if len(text) > 1 and text.startswith("0"):
            return int(text[1:], 8)
        return int(text, 10)
    except ValueError:
        return None


_SIZE_LETTERS = "KMGTPEZYRQ"
_BLOCK_SIZE_PATTERN = re.compile(r"(\d*)(?:([KkMmGgTtPpEeZzYyRrQq])(iB|B)?)?")


def parse_block_size(value: str) -> BlockSize | None:
    """
    Parse a block size argument such as "1K", "M", "KiB", "MB" or "512".

    A unit given without a number ("K", "MiB") is also printed after every
    amount. "human-readable" and "si" select autoscaling in powers of 1024 and
    1000. A leading "'" turns on thousands grouping.

    Args:
        value: The argument, as given to --block-size or in the environment.

    Returns:
        The parsed unit, or None if the argument is invalid.
    """
    grouping = value.startswith("'")
    if grouping:
        value = value[1:]
    if value == "human-readable":
        return BlockSize(autoscale=True, base=1024, grouping=grouping)
    if value == "si":
        return BlockSize(autoscale=True, base=1000, grouping=grouping)

    match = _BLOCK_SIZE_PATTERN.fullmatch(value)
    if match is None:
        return None
    digits, letter, binary = match.groups()
    if not digits and not letter:
        return None

    base = 1000 if binary == "B" else 1024
    exponent = _SIZE_LETTERS.index(letter.upper()) + 1 if letter else 0
    unit = (int(digits) if digits else 1) * base**exponent
    if unit == 0:
        return None

    suffix = ""
    if not digits:
        if base == 1000 and exponent == 1:
            suffix = "k"
        else:
            suffix = _SIZE_LETTERS[exponent - 1]
        if binary == "iB":
            suffix += "iB"
        elif binary == "B":
            suffix += "B"
    return BlockSize(unit=unit, base=base, suffix=suffix, grouping=grouping)


def parse_time_style(style: str, hard_locale: bool) -> TimeFormats:
    """
    Parse a --time-style argument into the formats of the time column.

    Named styles may be abbreviated. "+FORMAT" gives one strftime format for
    all times, "+OLD\\nRECENT" one for old and one for recent times. A "posix-"
    prefix means the locale's default style unless the locale is C or POSIX.

    Args:
        style: The argument.
        hard_locale: Whether the time locale is something other than C or POSIX.

    Returns:
        TimeFormats: The formats to use.

    Raises:
        ValueError: If the style is unknown or ambiguous, or a format has more
            than one newline.
    """
    while style.startswith("posix-"):
        if not hard_locale:
            return TimeFormats()
        style = style[len("posix-") :]

    if style.startswith("+"):
        old, newline, recent = style[1:].partition("\n")
        if "\n" in recent:
            raise ValueError(f"invalid time style format '{style[1:]}'")
        return TimeFormats(old=old, recent=recent if newline else old)

    if style in TIME_STYLES:
        matches = [style]
    else:
        matches = [name for name in TIME_STYLES if style and name.startswith(style)]
    if len(matches) != 1:
        kind = "ambiguous" if matches else "invalid"
        raise ValueError(f"{kind} argument '{style}' for 'time style'")

    name = matches[0]
    if name == "full-iso":
        full = "%Y-%m-%d %H:%M:%S.%N %z"
        return TimeFormats(old=full, recent=full)
    if name == "long-iso":
        return TimeFormats(old="%Y-%m-%d %H:%M", recent="%Y-%m-%d %H:%M")
    if name == "iso":
        return TimeFormats(old="%Y-%m-%d ", recent="%m-%d %H:%M")
    return TimeFormats()


def _resolve_units(
    options: ListingOptions, environ: Mapping[str, str]
) -> tuple[BlockSize, BlockSize]:
    """The units of the size column and of block counts, in that order."""
    if options.block_size is not None:
        return options.block_size, options.block_size
    if options.si:
        unit = BlockSize(autoscale=True, base=1000)
        return unit, unit
    if options.human_readable:
        unit = BlockSize(autoscale=True, base=1024)
        return unit, unit

    size_unit = BlockSize()
    block_unit = BlockSize(unit=OUTPUT_BLOCK_SIZE)
    for name in ("LS_BLOCK_SIZE", "BLOCK_SIZE", "BLOCKSIZE"):
        value = environ.get(name)
        if not value:
            continue
        parsed = parse_block_size(value)
        if parsed is not None:
            block_unit = parsed
            # BLOCKSIZE only ever applied to block counts.
            if name != "BLOCKSIZE":
                size_unit = parsed
        break
    else:
        if "POSIXLY_CORRECT" in environ:
            block_unit = BlockSize(unit=512)

    if options.kibibytes:
        block_unit = BlockSize(unit=OUTPUT_BLOCK_SIZE)
    return size_unit, block_unit


def _resolve_time_formats(
    options: ListingOptions,
    environ: Mapping[str, str],
    hard_locale: bool,
    diagnostics: Diagnostics,
) -> TimeFormats:
    if options.time_style is not None:
        return parse_time_style(options.time_style, hard_locale)
    style = environ.get("TIME_STYLE")
    if style is None:
        return TimeFormats()
    try:
        return parse_time_style(style, hard_locale)
    except ValueError:
        diagnostics.warn(
            f"ignoring invalid time style in environment variable TIME_STYLE: '{style}'"
        )
        return TimeFormats()


def _resolve_quoting(
    options: ListingOptions,
    environ: Mapping[str, str],
    is_tty: bool,
    diagnostics: Diagnostics,
) -> QuotingStyle:
    if options.quoting_style is not None:
        return options.quoting_style
    value = environ.get("QUOTING_STYLE")
    if value is not None:
        try:
            return QuotingStyle(value)
        except ValueError:
            diagnostics.warn(
                "ignoring invalid value of environment variable QUOTING_STYLE: "
                f"'{value}'"
            )
    return QuotingStyle.SHELL_ESCAPE if is_tty else QuotingStyle.LITERAL


def _resolve_line_length(
    options: ListingOptions,
    listing_format: ListingFormat,
    print_with_color: bool,
    environ: Mapping[str, str],
    terminal_width: int | None,
    diagnostics: Diagnostics,
) -> int:
    line_length = options.width
    needs_width = print_with_color or listing_format in (
        ListingFormat.MANY_PER_LINE,
        ListingFormat.HORIZONTAL,
        ListingFormat.WITH_COMMAS,
    )
    if needs_width:
        if line_length is None:
            line_length = terminal_width
        if line_length is None:
            columns = environ.get("COLUMNS")
            if columns:
                line_length = _parse_non_negative(columns)
                if line_length is None:
                    diagnostics.warn(
                        "ignoring invalid width in environment variable "
                        f"COLUMNS: '{columns}'"
                    )
    return DEFAULT_LINE_LENGTH if line_length is None else line_length


def _resolve_tabsize(
    options: ListingOptions,
    listing_format: ListingFormat,
    environ: Mapping[str, str],
    diagnostics: Diagnostics,
) -> int:
    if listing_format not in (
        ListingFormat.MANY_PER_LINE,
        ListingFormat.HORIZONTAL,
        ListingFormat.WITH_COMMAS,
    ):
        return DEFAULT_TAB_SIZE
    if options.tabsize is not None:
        return options.tabsize

    tabsize = DEFAULT_TAB_SIZE
    value = environ.get("TABSIZE")
    if value is not None:
        parsed = _parse_non_negative(value)
        if parsed is None:
            diagnostics.warn(
                f"ignoring invalid tab size in environment variable TABSIZE: '{value}'"
            )
        else:
            tabsize = parsed
    return tabsize


def _resolve_color(when: WhenMode, is_tty: bool, environ: Mapping[str, str]) -> bool:
    if when == WhenMode.ALWAYS:
        return True
    if when == WhenMode.AUTO:
        return is_tty and environ.get("TERM", "dumb") != "dumb"
    return False


def resolve_config(
    options: ListingOptions,
    environ: Mapping[str, str],
    is_tty: bool,
    terminal_width: int | None,
    diagnostics: Diagnostics,
    hard_locale: bool = False,
) -> ListingConfig:
    """
    Resolve command-line options into the configuration snapshot for a run.

    Defaults follow the conventional ls rules: many-per-line output on a
    terminal and one-per-line otherwise; an explicit time kind without long
    format selects time sorting; symbolic links named on the command line are
    followed only when they point at directories, unless directories are
    listed themselves, entries are classified, or long format is used. Names
    are quoted for the shell on a terminal and written literally otherwise.
    --zero ends lines with NUL and turns off columns, color and quoting.

    Args:
        options: Option values collected from the command line.
        environ: Environment variables (COLUMNS, TABSIZE, TERM, QUOTING_STYLE,
            TIME_STYLE and the block size variables are consulted).
        is_tty: Whether standard output is a terminal.
        terminal_width: Width of the terminal, or None if unknown.
        diagnostics: Receives warnings about ignored environment values.
        hard_locale: Whether the time locale is something other than C or POSIX.

    Returns:
        ListingConfig: The frozen configuration.
    """
    if options.format is not None:
        listing_format = options.format
    elif options.numeric_ids:
        listing_format = ListingFormat.LONG
    else:
        listing_format = (
            ListingFormat.MANY_PER_LINE if is_tty else ListingFormat.ONE_PER_LINE
        )
    if options.zero and listing_format != ListingFormat.LONG:
        listing_format = ListingFormat.ONE_PER_LINE

    print_with_color = not options.zero and _resolve_color(
        options.color, is_tty, environ
    )
    line_length = _resolve_line_length(
        options, listing_format, print_with_color, environ, terminal_width, diagnostics
    )
    tabsize = _resolve_tabsize(options, listing_format, environ, diagnostics)
    if print_with_color:
        tabsize = 0

    if options.sort_key is not None:
        sort_key = options.sort_key
    elif listing_format != ListingFormat.LONG and options.time_type is not None:
        sort_key = SortKey.TIME
    else:
        sort_key = SortKey.NAME

    dereference = options.dereference
    if dereference is None:
        if (
            options.immediate_dirs
            or options.indicator_style == IndicatorStyle.CLASSIFY
            or listing_format == ListingFormat.LONG
        ):
            dereference = DereferencePolicy.NEVER
        else:
            dereference = DereferencePolicy.COMMAND_LINE_SYMLINK_TO_DIR

    color_styles = dict(DEFAULT_COLOR_STYLES)

    def colored(indicator: ColorIndicator) -> bool:
        return print_with_color and bool(color_styles.get(indicator))

    check_symlink_mode = options.directories_first or (
        print_with_color
        and (
            colored(ColorIndicator.ORPHAN)
            or (
                colored(ColorIndicator.MISSING)
                and listing_format == ListingFormat.LONG
            )
        )
    )

    hide_control_chars = (
        options.hide_control_chars
        if options.hide_control_chars is not None
        else is_tty
    )
    if options.zero:
        quoting_style = QuotingStyle.LITERAL
        hide_control_chars = False
    else:
        quoting_style = _resolve_quoting(options, environ, is_tty, diagnostics)

    size_unit, block_unit = _resolve_units(options, environ)
    time_formats = TimeFormats()
    if listing_format == ListingFormat.LONG:
        time_formats = _resolve_time_formats(
            options, environ, hard_locale, diagnostics
        )

    return ListingConfig(
        ignore_mode=options.ignore_mode,
        ignore_patterns=tuple(options.ignore_patterns),
        hide_patterns=tuple(options.hide_patterns),
        immediate_dirs=options.immediate_dirs,
        recursive=options.recursive,
        format=listing_format,
        line_length=line_length,
        tabsize=tabsize,
        sort_key=sort_key,
        reverse=options.reverse,
        time_type=options.time_type or TimeType.MTIME,
        directories_first=options.directories_first,
        dereference=dereference,
        print_inode=options.print_inode,
        print_block_size=options.print_block_size,
        size_unit=size_unit,
        block_unit=block_unit,
        numeric_ids=options.numeric_ids,
        print_owner=options.print_owner,
        print_group=options.print_group,
        print_author=options.print_author,
        time_formats=time_formats,
        indicator_style=options.indicator_style,
        quoting_style=quoting_style,
        hide_control_chars=hide_control_chars,
        print_with_color=print_with_color,
        check_symlink_mode=check_symlink_mode,
        eol="\0" if options.zero else "\n",
        color_styles=color_styles,
    )
