"""
Type definitions and enumerations used across the dirls application.

This module contains the shared enums that describe how a listing is produced:
which key orders the entries, how they are laid out, which entries are hidden,
and how symbolic links are followed. They are used as option values on the
command line and as fields of the resolved listing configuration.
"""

from enum import Enum, IntEnum, StrEnum


class FileType(StrEnum):
    """
    Type tag recorded for every listed entry.

    The tag is first taken from the cheap hint reported by the directory scan and
    is replaced by the authoritative type once metadata has been fetched.
    ARG_DIRECTORY marks a directory named on the command line, which is listed
    by expanding its contents rather than as a plain entry.
    """

    UNKNOWN = "unknown"
    FIFO = "fifo"
    CHAR_DEVICE = "char-device"
    DIRECTORY = "directory"
    BLOCK_DEVICE = "block-device"
    REGULAR = "regular"
    SYMLINK = "symlink"
    SOCKET = "socket"
    WHITEOUT = "whiteout"
    ARG_DIRECTORY = "arg-directory"


class SortKey(StrEnum):
    """
    Primary key used by the sort dispatcher.

    TIME sorts on the timestamp selected by TimeType. NONE keeps the order in
    which the directory scan reported the entries.
    """

    NONE = "none"
    NAME = "name"
    SIZE = "size"
    TIME = "time"
    VERSION = "version"
    EXTENSION = "extension"
    WIDTH = "width"


class TimeType(StrEnum):
    """Timestamp used for time sorting and long-format display."""

    MTIME = "mtime"
    CTIME = "ctime"
    ATIME = "atime"
    BTIME = "birth"


class ListingFormat(StrEnum):
    """Output layout of a batch of entries."""

    LONG = "long"
    ONE_PER_LINE = "single-column"
    MANY_PER_LINE = "vertical"
    HORIZONTAL = "across"
    WITH_COMMAS = "commas"


class IgnoreMode(StrEnum):
    """
    Policy deciding which directory entries are skipped.

    DEFAULT skips every name starting with a dot and the hide patterns.
    DOT_AND_DOTDOT skips only "." and "..". MINIMAL skips nothing by itself.
    Explicit ignore patterns are applied in every mode.
    """

    DEFAULT = "default"
    DOT_AND_DOTDOT = "dot-and-dotdot"
    MINIMAL = "minimal"


class DereferencePolicy(StrEnum):
    """Rule governing whether a symbolic link is followed before being described."""

    NEVER = "never"
    ALWAYS = "always"
    COMMAND_LINE_ARGUMENTS = "command-line-arguments"
    COMMAND_LINE_SYMLINK_TO_DIR = "command-line-symlink-to-dir"


class IndicatorStyle(StrEnum):
    """Which type indicator characters are appended to names."""

    NONE = "none"
    SLASH = "slash"
    FILE_TYPE = "file-type"
    CLASSIFY = "classify"


class QuotingStyle(StrEnum):
    """
    How names are rendered before being written.

    The shell styles quote a name with single quotes so it can be pasted into
    a shell; SHELL and SHELL_ESCAPE only quote names that need it, the ALWAYS
    variants quote every name. The ESCAPE variants write non-printable
    characters as $'...' escapes instead of as they are.
    """

    LITERAL = "literal"
    SHELL = "shell"
    SHELL_ALWAYS = "shell-always"
    SHELL_ESCAPE = "shell-escape"
    SHELL_ESCAPE_ALWAYS = "shell-escape-always"
    C = "c"
    ESCAPE = "escape"


class WhenMode(StrEnum):
    """Tri-state switch used by --color."""

    ALWAYS = "always"
    AUTO = "auto"
    NEVER = "never"


class QuoteState(Enum):
    """Whether a name changes when quoted; UNKNOWN until first measured."""

    UNKNOWN = -1
    NO = 0
    YES = 1


class ColorIndicator(StrEnum):
    """Indicator slots of the color table, named after their LS_COLORS keys."""

    NORMAL = "no"
    FILE = "fi"
    DIRECTORY = "di"
    LINK = "ln"
    FIFO = "pi"
    SOCKET = "so"
    BLOCK_DEVICE = "bd"
    CHAR_DEVICE = "cd"
    MISSING = "mi"
    ORPHAN = "or"
    EXECUTABLE = "ex"
    DOOR = "do"
    SETUID = "su"
    SETGID = "sg"
    STICKY = "st"
    OTHER_WRITABLE = "ow"
    STICKY_OTHER_WRITABLE = "tw"
    MULTIHARDLINK = "mh"


class ExitStatus(IntEnum):
    """
    Process exit codes.

    MINOR_PROBLEM is used for failures such as an unreadable entry inside a
    directory; SERIOUS_TROUBLE for inaccessible command-line arguments, cycles
    and fatal errors.
    """

    SUCCESS = 0
    MINOR_PROBLEM = 1
    SERIOUS_TROUBLE = 2
