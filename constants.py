"""
Application-wide constants and lookup tables.

This module defines the fixed numbers of the column layout, the defaults used
when the environment does not say otherwise, the mapping from stat mode bits to
entry types, the built-in color table, and the signals that are intercepted
while colored output is being written.
"""

import stat
from typing import Final, Mapping

from models import ColorIndicator, FileType

PROGRAM_NAME: Final = "dirls"

# The narrowest possible column: one character of name plus the separator.
MIN_COLUMN_WIDTH: Final = 3
COLUMN_SEPARATOR_WIDTH: Final = 2

DEFAULT_LINE_LENGTH: Final = 80
DEFAULT_TAB_SIZE: Final = 8

# Allocated blocks are reported by stat in 512-byte units and printed in 1K units.
STAT_BLOCK_SIZE: Final = 512
OUTPUT_BLOCK_SIZE: Final = 1024

# Entries older than this (or in the future) show a year instead of a clock time.
RECENT_TIME_WINDOW_SECONDS: Final = 31556952 // 2

# Named arguments of --time-style, matched by unique prefix.
TIME_STYLES: Final = ("full-iso", "long-iso", "iso", "locale")

BACKUP_IGNORE_PATTERNS: Final = ("*~", ".*~")

MODE_FILE_TYPES: Final[Mapping[int, FileType]] = {
    stat.S_IFIFO: FileType.FIFO,
    stat.S_IFCHR: FileType.CHAR_DEVICE,
    stat.S_IFDIR: FileType.DIRECTORY,
    stat.S_IFBLK: FileType.BLOCK_DEVICE,
    stat.S_IFREG: FileType.REGULAR,
    stat.S_IFLNK: FileType.SYMLINK,
    stat.S_IFSOCK: FileType.SOCKET,
}

# Indicator used for a record whose metadata could not be fetched.
FILE_TYPE_COLOR_INDICATORS: Final[Mapping[FileType, ColorIndicator]] = {
    FileType.UNKNOWN: ColorIndicator.ORPHAN,
    FileType.FIFO: ColorIndicator.FIFO,
    FileType.CHAR_DEVICE: ColorIndicator.CHAR_DEVICE,
    FileType.DIRECTORY: ColorIndicator.DIRECTORY,
    FileType.BLOCK_DEVICE: ColorIndicator.BLOCK_DEVICE,
    FileType.REGULAR: ColorIndicator.FILE,
    FileType.SYMLINK: ColorIndicator.LINK,
    FileType.SOCKET: ColorIndicator.SOCKET,
    FileType.WHITEOUT: ColorIndicator.FILE,
    FileType.ARG_DIRECTORY: ColorIndicator.DIRECTORY,
}

# Built-in color table, as Rich style definitions. None means "not colored".
DEFAULT_COLOR_STYLES: Final[Mapping[ColorIndicator, str | None]] = {
    ColorIndicator.NORMAL: None,
    ColorIndicator.FILE: None,
    ColorIndicator.DIRECTORY: "bold blue",
    ColorIndicator.LINK: "bold cyan",
    ColorIndicator.FIFO: "yellow",
    ColorIndicator.SOCKET: "bold magenta",
    ColorIndicator.BLOCK_DEVICE: "bold yellow",
    ColorIndicator.CHAR_DEVICE: "bold yellow",
    ColorIndicator.MISSING: None,
    ColorIndicator.ORPHAN: None,
    ColorIndicator.EXECUTABLE: "bold green",
    ColorIndicator.DOOR: "bold magenta",
    ColorIndicator.SETUID: "white on red",
    ColorIndicator.SETGID: "black on yellow",
    ColorIndicator.STICKY: "white on blue",
    ColorIndicator.OTHER_WRITABLE: "blue on green",
    ColorIndicator.STICKY_OTHER_WRITABLE: "black on green",
    ColorIndicator.MULTIHARDLINK: None,
}

RESET_COLOR_SEQUENCE: Final = "\033[0m"

# Terminating signals first intercepted, then replayed with their default action.
# Names missing on the running platform are skipped.
CAUGHT_SIGNAL_NAMES: Final = (
    "SIGTSTP",
    "SIGALRM",
    "SIGHUP",
    "SIGINT",
    "SIGPIPE",
    "SIGQUIT",
    "SIGTERM",
    "SIGPOLL",
    "SIGPROF",
    "SIGVTALRM",
    "SIGXCPU",
    "SIGXFSZ",
)

STOP_SIGNAL_NAME: Final = "SIGTSTP"
