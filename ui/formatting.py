"""
Formatting of the metadata columns of a long listing.

Sizes, block counts, permission strings, owners and timestamps are turned
into the text shown before each name. Missing metadata is shown as '?'.
"""

import grp
import locale
import os
import pwd
import stat
import time
from functools import lru_cache

from constants import RECENT_TIME_WINDOW_SECONDS, STAT_BLOCK_SIZE
from core.models import BlockSize, FileRecord, TimeFormats
from models import FileType

_SIZE_LETTERS = "KMGTPEZYRQ"

_FILE_TYPE_LETTERS = {
    FileType.UNKNOWN: "?",
    FileType.FIFO: "p",
    FileType.CHAR_DEVICE: "c",
    FileType.DIRECTORY: "d",
    FileType.BLOCK_DEVICE: "b",
    FileType.REGULAR: "-",
    FileType.SYMLINK: "l",
    FileType.SOCKET: "s",
    FileType.WHITEOUT: "w",
    FileType.ARG_DIRECTORY: "d",
}


def _scale_letter(exponent: int, base: int) -> str:
    if base == 1000 and exponent == 1:
        return "k"
    return _SIZE_LETTERS[exponent - 1]


def human_readable(amount: int, unit: BlockSize) -> str:
    """
    Format a byte count in the given unit.

    Without autoscaling, the count is expressed in whole units, rounded up,
    followed by the unit's suffix. With autoscaling, the largest power of the
    base not above the amount is used with a one-letter suffix, and values
    below 10 keep one decimal, rounded up (1536 -> "1.5K").

    Args:
        amount: Number of bytes.
        unit: The unit to print in.

    Returns:
        str: The formatted amount.
    """
    if not unit.autoscale:
        value = -(-amount // unit.unit)
        if unit.grouping:
            return locale.format_string("%d", value, grouping=True) + unit.suffix
        return f"{value}{unit.suffix}"

    base = unit.base
    if amount < base:
        return str(amount)

    exponent = 1
    while amount >= base ** (exponent + 1) and exponent < len(_SIZE_LETTERS):
        exponent += 1
    scale = base**exponent

    tenths = -(-amount * 10 // scale)
    if tenths < 100:
        return f"{tenths // 10}.{tenths % 10}{_scale_letter(exponent, base)}"

    whole = -(-amount // scale)
    if whole >= base and exponent < len(_SIZE_LETTERS):
        return f"1.0{_scale_letter(exponent + 1, base)}"
    return f"{whole}{_scale_letter(exponent, base)}"


def allocated_bytes(record: FileRecord) -> int:
    """Bytes allocated on disk for a record, 0 if unknown."""
    if record.stat is None:
        return 0
    return getattr(record.stat, "st_blocks", 0) * STAT_BLOCK_SIZE


def format_blocks(record: FileRecord, unit: BlockSize) -> str:
    if not record.stat_ok:
        return "?"
    return human_readable(allocated_bytes(record), unit)


def format_total(records: list[FileRecord], unit: BlockSize) -> str:
    total = sum(allocated_bytes(r) for r in records if r.stat_ok)
    return human_readable(total, unit)


def format_inode(record: FileRecord) -> str:
    if not record.stat_ok or record.stat is None:
        return "?"
    return str(record.stat.st_ino)


def format_mode(record: FileRecord) -> str:
    """
    Ten-character permission string, e.g. "drwxr-xr-x".

    Records without metadata show their type letter followed by '?'s.
    """
    if not record.stat_ok or record.stat is None:
        return _FILE_TYPE_LETTERS[record.file_type] + "?" * 9
    return stat.filemode(record.stat.st_mode)


def format_link_count(record: FileRecord) -> str:
    if not record.stat_ok or record.stat is None:
        return "?"
    return str(record.stat.st_nlink)


@lru_cache(maxsize=None)
def user_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


@lru_cache(maxsize=None)
def group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def format_owner(record: FileRecord, numeric: bool) -> str:
    if not record.stat_ok or record.stat is None:
        return "?"
    uid = record.stat.st_uid
    return str(uid) if numeric else user_name(uid)


def format_group(record: FileRecord, numeric: bool) -> str:
    if not record.stat_ok or record.stat is None:
        return "?"
    gid = record.stat.st_gid
    return str(gid) if numeric else group_name(gid)


def is_device(record: FileRecord) -> bool:
    return (
        record.stat_ok
        and record.stat is not None
        and (stat.S_ISCHR(record.stat.st_mode) or stat.S_ISBLK(record.stat.st_mode))
    )


def device_numbers(record: FileRecord) -> tuple[str, str]:
    """Major and minor device numbers of a device record, as strings."""
    assert record.stat is not None
    rdev = record.stat.st_rdev
    return str(os.major(rdev)), str(os.minor(rdev))


def format_size(record: FileRecord, unit: BlockSize) -> str:
    if not record.stat_ok or record.stat is None:
        return "?"
    return human_readable(record.stat.st_size, unit)


def is_recent(timestamp_ns: int, now_ns: int) -> bool:
    """True if the time lies within the last six months and not in the future."""
    six_months_ago = now_ns - RECENT_TIME_WINDOW_SECONDS * 1_000_000_000
    return six_months_ago < timestamp_ns < now_ns


def _strftime(time_format: str, when: time.struct_time, nanoseconds: int) -> str:
    # "%N" is not a strftime directive; "%%N" is a literal "%N".
    parts = time_format.split("%%")
    parts = [part.replace("%N", f"{nanoseconds:09d}") for part in parts]
    return time.strftime("%%".join(parts), when)


@lru_cache(maxsize=None)
def expected_time_width(formats: TimeFormats) -> int:
    """Width of the epoch in the old format, used to align unknown times."""
    return len(_strftime(formats.old, time.localtime(0), 0))


def format_time(
    timestamp_ns: int | None, now_ns: int, formats: TimeFormats = TimeFormats()
) -> str:
    """
    Format a timestamp the way long listings show it.

    Recent times use formats.recent, older or future times formats.old.

    Args:
        timestamp_ns: Nanoseconds since the epoch, or None if unavailable.
        now_ns: Current time, in nanoseconds since the epoch.
        formats: The pair of strftime formats to use.

    Returns:
        str: e.g. "Mar  4 12:30" or "Mar  4  2019"; "?" right-aligned when the
            time is unavailable.
    """
    if timestamp_ns is None:
        return "?".rjust(expected_time_width(formats))
    seconds, nanoseconds = divmod(timestamp_ns, 1_000_000_000)
    try:
        when = time.localtime(seconds)
    except (OverflowError, OSError, ValueError):
        return str(seconds).rjust(expected_time_width(formats))
    time_format = formats.recent if is_recent(timestamp_ns, now_ns) else formats.old
    return _strftime(time_format, when, nanoseconds)
