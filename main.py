"""
dirls CLI Entry Point.

This module implements the command-line interface of dirls, a directory lister
in the tradition of ls. It lists the named files and the contents of the named
directories, optionally recursing into subdirectories, in one of several
layouts: one name per line, many per line (by columns or across), comma
separated, or long format with permissions, owners, sizes and times.

The run is organised in three stages:

1.  **Option Resolution**: Command-line flags are folded into a ListingOptions
    value, then resolved once, together with the terminal and the COLUMNS and
    TABSIZE environment variables, into an immutable ListingConfig.
2.  **Listing**: A ListingSession lists the command-line arguments, then expands
    pending directories depth first. Directories are guarded against cycles,
    metadata is fetched only when the configuration needs it, and each batch is
    sorted before being written.
3.  **Exit**: Access problems are reported on stderr as they happen; the exit
    status is 0 on success, 1 for minor problems (an unreadable entry) and 2
    for serious trouble (an inaccessible argument, a cycle, a write failure).

Usage:
    Run directly as a script or via the installed entry point.

    $ dirls -la --group-directories-first /etc

Dependencies:
    - Typer: CLI argument parsing and app structure.
    - Rich: Diagnostics on stderr, color styles and display width measurement.
"""

import io
import locale
import os
import sys
from typing import Annotated

import typer
from rich.markup import escape

from constants import BACKUP_IGNORE_PATTERNS, PROGRAM_NAME, TIME_STYLES
from core.config import (
    ListingOptions,
    parse_block_size,
    parse_time_style,
    resolve_config,
)
from core.exceptions import CollationError, OutputWriteError
from core.models import BlockSize
from core.session import ListingSession
from models import (
    DereferencePolicy,
    ExitStatus,
    IgnoreMode,
    IndicatorStyle,
    ListingFormat,
    QuotingStyle,
    SortKey,
    TimeType,
    WhenMode,
)
from ui.diagnostics import RichDiagnostics, format_error
from utils import error_console, stream_isatty, terminal_width

app = typer.Typer()

TIME_WORDS: dict[str, TimeType] = {
    "atime": TimeType.ATIME,
    "access": TimeType.ATIME,
    "use": TimeType.ATIME,
    "ctime": TimeType.CTIME,
    "status": TimeType.CTIME,
    "mtime": TimeType.MTIME,
    "modification": TimeType.MTIME,
    "birth": TimeType.BTIME,
    "creation": TimeType.BTIME,
}


def parse_time_word(value: str | None) -> TimeType | None:
    """
    Map a --time argument to a TimeType.

    Raises:
        typer.BadParameter: If the word is not a known time kind.
    """
    if value is None:
        return None
    try:
        return TIME_WORDS[value]
    except KeyError as e:
        valid = ", ".join(repr(word) for word in TIME_WORDS)
        raise typer.BadParameter(
            f"invalid argument {value!r}; valid arguments are: {valid}"
        ) from e


def parse_block_size_option(value: str | None) -> BlockSize | None:
    """
    Parse a --block-size argument.

    Raises:
        typer.BadParameter: If the argument is not a valid size.
    """
    if value is None:
        return None
    unit = parse_block_size(value)
    if unit is None:
        raise typer.BadParameter(f"invalid --block-size argument '{value}'")
    return unit


def check_time_style(value: str | None) -> str | None:
    """
    Validate a --time-style argument, returning it unchanged.

    Raises:
        typer.BadParameter: If the style is unknown, ambiguous or malformed.
    """
    if value is None:
        return None
    try:
        parse_time_style(value, hard_locale=True)
    except ValueError as e:
        valid = ", ".join(repr(name) for name in TIME_STYLES)
        raise typer.BadParameter(
            f"{e}; valid arguments are: {valid}, or '+FORMAT'"
        ) from e
    return value


@app.command()
def main(
    paths: Annotated[
        list[str] | None,
        typer.Argument(help="Files and directories to list (default: .)"),
    ] = None,
    all_entries: Annotated[
        bool,
        typer.Option("--all", "-a", help="Do not ignore entries starting with ."),
    ] = False,
    almost_all: Annotated[
        bool,
        typer.Option("--almost-all", "-A", help="Do not list implied . and .."),
    ] = False,
    ignore_backups: Annotated[
        bool,
        typer.Option(
            "--ignore-backups", "-B", help="Do not list entries ending with ~"
        ),
    ] = False,
    ignore: Annotated[
        list[str] | None,
        typer.Option("--ignore", "-I", help="Do not list entries matching PATTERN"),
    ] = None,
    hide: Annotated[
        list[str] | None,
        typer.Option(
            "--hide", help="Do not list entries matching PATTERN (overridden by -a, -A)"
        ),
    ] = None,
    directory: Annotated[
        bool,
        typer.Option("--directory", "-d", help="List directories themselves"),
    ] = False,
    recursive: Annotated[
        bool,
        typer.Option("--recursive", "-R", help="List subdirectories recursively"),
    ] = False,
    long_format: Annotated[
        bool, typer.Option("-l", help="Use a long listing format")
    ] = False,
    one_per_line: Annotated[
        bool, typer.Option("-1", help="List one file per line")
    ] = False,
    by_columns: Annotated[
        bool, typer.Option("-C", help="List entries by columns")
    ] = False,
    across: Annotated[
        bool, typer.Option("-x", help="List entries by lines instead of by columns")
    ] = False,
    commas: Annotated[
        bool,
        typer.Option("-m", help="Fill width with a comma separated list of entries"),
    ] = False,
    listing_format: Annotated[
        ListingFormat | None,
        typer.Option("--format", help="Output layout"),
    ] = None,
    width: Annotated[
        int | None,
        typer.Option(
            "--width", "-w", min=0, help="Set output width; 0 means no limit"
        ),
    ] = None,
    tabsize: Annotated[
        int | None,
        typer.Option("--tabsize", "-T", min=0, help="Assume tab stops at each COLS"),
    ] = None,
    reverse: Annotated[
        bool, typer.Option("--reverse", "-r", help="Reverse order while sorting")
    ] = False,
    sort_size: Annotated[
        bool, typer.Option("-S", help="Sort by file size, largest first")
    ] = False,
    sort_time: Annotated[
        bool, typer.Option("-t", help="Sort by time, newest first")
    ] = False,
    sort_extension: Annotated[
        bool, typer.Option("-X", help="Sort alphabetically by entry extension")
    ] = False,
    sort_version: Annotated[
        bool, typer.Option("-v", help="Natural sort of (version) numbers within text")
    ] = False,
    unsorted: Annotated[
        bool, typer.Option("-U", help="Do not sort; list entries in directory order")
    ] = False,
    unsorted_all: Annotated[
        bool, typer.Option("-f", help="Same as -a -U")
    ] = False,
    sort: Annotated[
        SortKey | None,
        typer.Option("--sort", help="Sort by WORD instead of name"),
    ] = None,
    use_ctime: Annotated[
        bool, typer.Option("-c", help="Use the status change time")
    ] = False,
    use_atime: Annotated[
        bool, typer.Option("-u", help="Use the last access time")
    ] = False,
    time_word: Annotated[
        str | None,
        typer.Option(
            "--time",
            help="Select which timestamp is shown and sorted on "
            "(atime, ctime, mtime, birth)",
        ),
    ] = None,
    group_directories_first: Annotated[
        bool,
        typer.Option(
            "--group-directories-first", help="Group directories before files"
        ),
    ] = False,
    dereference: Annotated[
        bool,
        typer.Option(
            "--dereference", "-L", help="Show information for symbolic link targets"
        ),
    ] = False,
    dereference_command_line: Annotated[
        bool,
        typer.Option(
            "--dereference-command-line",
            "-H",
            help="Follow symbolic links listed on the command line",
        ),
    ] = False,
    dereference_command_line_symlink_to_dir: Annotated[
        bool,
        typer.Option(
            "--dereference-command-line-symlink-to-dir",
            help="Follow each command line symbolic link that points to a directory",
        ),
    ] = False,
    inode: Annotated[
        bool, typer.Option("--inode", "-i", help="Print the index number of each file")
    ] = False,
    size: Annotated[
        bool,
        typer.Option("--size", "-s", help="Print the allocated size of each file"),
    ] = False,
    human_readable: Annotated[
        bool,
        typer.Option(
            "--human-readable", "-h", help="Print sizes like 1K 234M 2G etc."
        ),
    ] = False,
    si: Annotated[
        bool,
        typer.Option("--si", help="Likewise, but use powers of 1000 not 1024"),
    ] = False,
    kibibytes: Annotated[
        bool,
        typer.Option(
            "--kibibytes", "-k", help="Default to 1024-byte blocks for file system usage"
        ),
    ] = False,
    block_size: Annotated[
        str | None,
        typer.Option(
            "--block-size",
            metavar="SIZE",
            help="With -l, scale sizes by SIZE when printing them",
        ),
    ] = None,
    numeric_uid_gid: Annotated[
        bool,
        typer.Option(
            "--numeric-uid-gid", "-n", help="Like -l, but list numeric user and group IDs"
        ),
    ] = False,
    long_without_owner: Annotated[
        bool, typer.Option("-g", help="Like -l, but do not list owner")
    ] = False,
    long_without_group: Annotated[
        bool, typer.Option("-o", help="Like -l, but do not list group information")
    ] = False,
    no_group: Annotated[
        bool,
        typer.Option("--no-group", "-G", help="In a long listing, don't print group names"),
    ] = False,
    author: Annotated[
        bool, typer.Option("--author", help="With -l, print the author of each file")
    ] = False,
    full_time: Annotated[
        bool, typer.Option("--full-time", help="Like -l --time-style=full-iso")
    ] = False,
    time_style: Annotated[
        str | None,
        typer.Option(
            "--time-style",
            metavar="TIME_STYLE",
            help="Time/date format with -l: full-iso, long-iso, iso, locale or +FORMAT",
        ),
    ] = None,
    slash: Annotated[
        bool, typer.Option("-p", help="Append / indicator to directories")
    ] = False,
    file_type: Annotated[
        bool,
        typer.Option("--file-type", help="Likewise, except do not append '*'"),
    ] = False,
    classify: Annotated[
        bool,
        typer.Option("--classify", "-F", help="Append indicator (one of */=@|) to entries"),
    ] = False,
    indicator_style: Annotated[
        IndicatorStyle | None,
        typer.Option("--indicator-style", help="Append indicator with style WORD"),
    ] = None,
    escape_names: Annotated[
        bool,
        typer.Option(
            "--escape", "-b", help="Print C-style escapes for nongraphic characters"
        ),
    ] = False,
    literal: Annotated[
        bool, typer.Option("--literal", "-N", help="Print entry names without quoting")
    ] = False,
    quote_name: Annotated[
        bool,
        typer.Option("--quote-name", "-Q", help="Enclose entry names in double quotes"),
    ] = False,
    quoting_style: Annotated[
        QuotingStyle | None,
        typer.Option("--quoting-style", help="Use quoting style WORD for entry names"),
    ] = None,
    hide_control_chars: Annotated[
        bool,
        typer.Option(
            "--hide-control-chars", "-q", help="Print ? instead of nongraphic characters"
        ),
    ] = False,
    show_control_chars: Annotated[
        bool,
        typer.Option(
            "--show-control-chars", help="Show nongraphic characters as-is"
        ),
    ] = False,
    color: Annotated[
        WhenMode,
        typer.Option("--color", help="Color the output WHEN"),
    ] = WhenMode.NEVER,
    zero: Annotated[
        bool, typer.Option("--zero", help="End each output line with NUL, not newline")
    ] = False,
):
    """
    List information about the FILEs (the current directory by default).

    Entries are sorted alphabetically unless a sort option is given. When an
    option is given more than once in different spellings, the explicit
    --format, --sort, --time, --indicator-style and --quoting-style words take
    precedence over the single-letter flags.

    Raises:
        typer.Exit: Always, with the listing's exit status.
    """
    options = ListingOptions(paths=list(paths or []))

    if all_entries or unsorted_all:
        options.ignore_mode = IgnoreMode.MINIMAL
    elif almost_all:
        options.ignore_mode = IgnoreMode.DOT_AND_DOTDOT
    options.ignore_patterns = list(ignore or [])
    if ignore_backups:
        options.ignore_patterns.extend(BACKUP_IGNORE_PATTERNS)
    options.hide_patterns = list(hide or [])

    options.immediate_dirs = directory
    options.recursive = recursive
    options.format = select_format(
        listing_format,
        long_format or long_without_owner or long_without_group or full_time,
        commas,
        across,
        by_columns,
        one_per_line,
    )
    options.width = width
    options.tabsize = tabsize

    options.reverse = reverse
    options.sort_key = select_sort_key(
        sort, unsorted or unsorted_all, sort_size, sort_time, sort_extension, sort_version
    )
    options.time_type = parse_time_word(time_word)
    if options.time_type is None:
        if use_ctime:
            options.time_type = TimeType.CTIME
        elif use_atime:
            options.time_type = TimeType.ATIME
    options.directories_first = group_directories_first

    if dereference:
        options.dereference = DereferencePolicy.ALWAYS
    elif dereference_command_line:
        options.dereference = DereferencePolicy.COMMAND_LINE_ARGUMENTS
    elif dereference_command_line_symlink_to_dir:
        options.dereference = DereferencePolicy.COMMAND_LINE_SYMLINK_TO_DIR

    options.print_inode = inode
    options.print_block_size = size
    options.human_readable = human_readable
    options.si = si
    options.kibibytes = kibibytes
    options.block_size = parse_block_size_option(block_size)
    options.numeric_ids = numeric_uid_gid
    options.print_owner = not long_without_owner
    options.print_group = not (long_without_group or no_group)
    options.print_author = author
    options.time_style = check_time_style(time_style)
    if options.time_style is None and full_time:
        options.time_style = "full-iso"

    if indicator_style is not None:
        options.indicator_style = indicator_style
    elif classify:
        options.indicator_style = IndicatorStyle.CLASSIFY
    elif file_type:
        options.indicator_style = IndicatorStyle.FILE_TYPE
    elif slash:
        options.indicator_style = IndicatorStyle.SLASH

    if quoting_style is not None:
        options.quoting_style = quoting_style
    elif quote_name:
        options.quoting_style = QuotingStyle.C
    elif escape_names:
        options.quoting_style = QuotingStyle.ESCAPE
    elif literal:
        options.quoting_style = QuotingStyle.LITERAL

    if hide_control_chars:
        options.hide_control_chars = True
    elif show_control_chars:
        options.hide_control_chars = False
    options.color = color
    options.zero = zero

    status = run_listing(options)
    raise typer.Exit(code=int(status))


def select_format(
    listing_format: ListingFormat | None,
    long_format: bool,
    commas: bool,
    across: bool,
    by_columns: bool,
    one_per_line: bool,
) -> ListingFormat | None:
    """
    Fold the format flags into one ListingFormat.

    --format wins, then -l, -m, -x, -C and -1 in that order. -1 has no effect
    together with -l.

    Returns:
        The selected format, or None to let configuration pick the default.
    """
    if listing_format is not None:
        return listing_format
    if long_format:
        return ListingFormat.LONG
    if commas:
        return ListingFormat.WITH_COMMAS
    if across:
        return ListingFormat.HORIZONTAL
    if by_columns:
        return ListingFormat.MANY_PER_LINE
    if one_per_line:
        return ListingFormat.ONE_PER_LINE
    return None


def select_sort_key(
    sort: SortKey | None,
    unsorted: bool,
    by_size: bool,
    by_time: bool,
    by_extension: bool,
    by_version: bool,
) -> SortKey | None:
    if sort is not None:
        return sort
    if unsorted:
        return SortKey.NONE
    if by_size:
        return SortKey.SIZE
    if by_time:
        return SortKey.TIME
    if by_extension:
        return SortKey.EXTENSION
    if by_version:
        return SortKey.VERSION
    return None


def run_listing(options: ListingOptions) -> ExitStatus:
    """
    Resolve the configuration and run one listing session on standard output.

    Args:
        options: The collected command-line options.

    Returns:
        ExitStatus: The session's exit status, or SERIOUS_TROUBLE after a fatal
            error.
    """
    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error:
        locale.setlocale(locale.LC_ALL, "C")

    stream = sys.stdout
    if isinstance(stream, io.TextIOWrapper):
        # Names that are not valid in the locale's encoding are written back
        # as the bytes they were read as.
        stream.reconfigure(errors="surrogateescape")

    diagnostics = RichDiagnostics()
    is_tty = stream_isatty(stream)
    config = resolve_config(
        options,
        os.environ,
        is_tty,
        terminal_width(stream) if is_tty else None,
        diagnostics,
        hard_locale=locale.setlocale(locale.LC_TIME) not in ("C", "POSIX"),
    )

    session = ListingSession(config, diagnostics, stream)
    try:
        return session.run(options.paths)
    except OutputWriteError as e:
        print_fatal_err(format_error(e))
    except CollationError as e:
        print_fatal_err(e.message)
    except MemoryError:
        print_fatal_err("memory exhausted")
    return ExitStatus.SERIOUS_TROUBLE


def print_fatal_err(message: str) -> None:
    """
    Displays a fatal error on stderr.

    Args:
        message: The error text, without the program name.
    """
    error_console.print(
        f"[bold red]{PROGRAM_NAME}: {escape(message)}[/bold red]",
        highlight=False,
        soft_wrap=True,
    )


if __name__ == "__main__":
    app()
