"""
Traversal engine.

Turns command-line arguments and directory entries into FileRecords in the
current batch, fetching metadata only when the configuration needs it, and
turns directories found in a sorted batch into pending work items for the
listing session. Directories being expanded are registered with the cycle
guard, so a directory reachable from itself is listed only once.

Failures are reported through Diagnostics and escalate the exit status: a
failure on a command-line argument is serious, any other failure minor.
"""

import errno
import fnmatch
import os
import stat
from collections import deque

from adapters.filesystem import DirectoryHandle, FileSystem
from core.config import ListingConfig
from core.cycle_guard import CycleGuard
from core.exceptions import (
    DirectoryCloseError,
    DirectoryIdentityError,
    DirectoryOpenError,
    DirectoryReadError,
    FileAccessError,
    MetadataFetchError,
    SymlinkReadError,
)
from core.models import (
    ExitStatusTracker,
    ExpandDirectory,
    FileRecord,
    FileRecordStore,
    PendingDirectory,
    PopGuardMarker,
)
from models import (
    ColorIndicator,
    DereferencePolicy,
    FileType,
    IgnoreMode,
    IndicatorStyle,
    ListingFormat,
)
from ui.diagnostics import Diagnostics
from ui.signals import NoOpSignalCoordinator, SignalCoordinator


def attach(dirname: str, name: str) -> str:
    """
    Path of an entry relative to the current directory.

    Entries of "." are named as they are; otherwise the directory name and
    the entry name are joined with a single '/'.
    """
    if dirname == ".":
        return name
    if dirname.endswith("/"):
        return dirname + name
    return f"{dirname}/{name}"


def concat_path(dirname: str, name: str) -> str:
    """Join a directory and an entry name for a pending subdirectory ("./sub")."""
    if dirname.endswith("/"):
        return dirname + name
    return f"{dirname}/{name}"


def pattern_matches(pattern: str, name: str) -> bool:
    """
    Shell-pattern match where a leading '.' must be matched literally.

    Args:
        pattern: A glob pattern such as "*~".
        name: The entry name.

    Returns:
        bool: True if the name matches.
    """
    if name.startswith(".") and not pattern.startswith("."):
        return False
    return fnmatch.fnmatchcase(name, pattern)


class TraversalEngine:
    """
    Fills the batch and the pending-directory work list of a listing session.

    The engine owns no state of its own: the batch, cycle guard, work list and
    exit status all belong to the session and are passed in by reference.
    """

    def __init__(
        self,
        config: ListingConfig,
        fs: FileSystem,
        diagnostics: Diagnostics,
        store: FileRecordStore,
        guard: CycleGuard,
        pending: deque[PendingDirectory],
        status: ExitStatusTracker,
        signals: SignalCoordinator | None = None,
    ):
        self.config = config
        self.fs = fs
        self.diagnostics = diagnostics
        self.store = store
        self.guard = guard
        self.pending = pending
        self.status = status
        self.signals = signals or NoOpSignalCoordinator()

    def file_failure(self, error: FileAccessError, serious: bool) -> None:
        """Report an access error and escalate the exit status."""
        self.diagnostics.report(error)
        self.status.escalate(serious)

    def file_ignored(self, name: str) -> bool:
        """
        Whether a directory entry is left out of the listing.

        Args:
            name: The entry name.

        Returns:
            bool: True if the ignore mode or a hide/ignore pattern excludes it.
        """
        mode = self.config.ignore_mode
        if mode != IgnoreMode.MINIMAL and name.startswith("."):
            if mode == IgnoreMode.DEFAULT or name in (".", ".."):
                return True
        if mode == IgnoreMode.DEFAULT and any(
            pattern_matches(p, name) for p in self.config.hide_patterns
        ):
            return True
        return any(pattern_matches(p, name) for p in self.config.ignore_patterns)

    def should_fetch_metadata(self, type_hint: FileType, command_line_arg: bool) -> bool:
        """
        Decide whether an entry's metadata must be fetched.

        Metadata is skipped when the scan's type hint already tells everything
        the configured format, sort, indicators and colors need.

        Args:
            type_hint: The type reported by the directory scan.
            command_line_arg: True for names given on the command line, which
                are always fetched.

        Returns:
            bool: True if the entry must be stat'ed.
        """
        config = self.config
        unknown = type_hint == FileType.UNKNOWN
        if command_line_arg or config.requires_stat:
            return True
        if config.requires_type and unknown:
            return True

        if (
            type_hint in (FileType.DIRECTORY, FileType.UNKNOWN)
            and config.print_with_color
            and (
                config.is_colored(ColorIndicator.OTHER_WRITABLE)
                or config.is_colored(ColorIndicator.STICKY)
                or config.is_colored(ColorIndicator.STICKY_OTHER_WRITABLE)
            )
        ):
            return True

        if (
            (config.print_inode or config.requires_type)
            and type_hint in (FileType.SYMLINK, FileType.UNKNOWN)
            and (
                config.dereference == DereferencePolicy.ALWAYS
                or config.check_symlink_mode
            )
        ):
            return True

        # Inode numbers reported by the scan are not trusted (mount points).
        if config.print_inode:
            return True

        return type_hint in (FileType.REGULAR, FileType.UNKNOWN) and (
            config.indicator_style == IndicatorStyle.CLASSIFY
            or (
                config.print_with_color
                and (
                    config.is_colored(ColorIndicator.EXECUTABLE)
                    or config.is_colored(ColorIndicator.SETUID)
                    or config.is_colored(ColorIndicator.SETGID)
                )
            )
        )

    def _fetch_metadata(self, path: str, command_line_arg: bool) -> os.stat_result:
        policy = self.config.dereference
        if policy == DereferencePolicy.ALWAYS:
            return self.fs.stat(path)

        if command_line_arg and policy in (
            DereferencePolicy.COMMAND_LINE_ARGUMENTS,
            DereferencePolicy.COMMAND_LINE_SYMLINK_TO_DIR,
        ):
            try:
                result = self.fs.stat(path)
            except MetadataFetchError as e:
                errno_value = getattr(e.original_exception, "errno", None)
                if policy == DereferencePolicy.COMMAND_LINE_SYMLINK_TO_DIR and (
                    errno_value in (errno.ENOENT, errno.ELOOP)
                ):
                    return self.fs.lstat(path)
                raise
            if policy == DereferencePolicy.COMMAND_LINE_ARGUMENTS or stat.S_ISDIR(
                result.st_mode
            ):
                return result

        return self.fs.lstat(path)

    def _read_link(self, record: FileRecord, path: str, command_line_arg: bool) -> None:
        try:
            record.link_target = self.fs.readlink(path)
        except SymlinkReadError as e:
            self.file_failure(e, command_line_arg)
            return

        if not (
            self.config.indicator_style
            in (IndicatorStyle.FILE_TYPE, IndicatorStyle.CLASSIFY)
            or self.config.check_symlink_mode
        ):
            return
        try:
            target = self.fs.stat(path)
        except MetadataFetchError:
            # A dangling link keeps link_ok False.
            return
        record.link_ok = True
        record.link_mode = target.st_mode

    def gobble_file(
        self,
        name: str,
        type_hint: FileType,
        command_line_arg: bool,
        dirname: str | None = None,
    ) -> FileRecord | None:
        """
        Add an entry to the current batch.

        Args:
            name: The entry name, or the argument as given on the command line.
            type_hint: Type reported by the scan; UNKNOWN for arguments.
            command_line_arg: True for command-line arguments.
            dirname: The directory being read, or None for arguments.

        Returns:
            The new record, or None if a command-line argument could not be
            accessed and was dropped.
        """
        record = FileRecord(name=name, type_hint=type_hint)
        if not self.should_fetch_metadata(type_hint, command_line_arg):
            self.store.append(record)
            return record

        if dirname is None or name.startswith("/"):
            path = name
        else:
            path = attach(dirname, name)

        try:
            result = self._fetch_metadata(path, command_line_arg)
        except MetadataFetchError as e:
            self.file_failure(e, command_line_arg)
            if command_line_arg:
                return None
            self.store.append(record)
            return record

        record.confirm(result)
        if (
            record.file_type == FileType.DIRECTORY
            and command_line_arg
            and not self.config.immediate_dirs
        ):
            record.confirmed_type = FileType.ARG_DIRECTORY

        if record.file_type == FileType.SYMLINK and (
            self.config.format == ListingFormat.LONG or self.config.check_symlink_mode
        ):
            self._read_link(record, path, command_line_arg)

        self.store.append(record)
        return record

    def queue_directory(
        self, path: str, real_name: str | None, command_line_arg: bool
    ) -> None:
        """Push a directory onto the front of the work list."""
        self.pending.appendleft(ExpandDirectory(path, real_name, command_line_arg))

    def extract_dirs_from_files(
        self,
        ordering: list[FileRecord],
        dirname: str | None,
        command_line_arg: bool,
    ) -> list[FileRecord]:
        """
        Queue the directories of a sorted batch for expansion.

        When expanding a directory recursively, a pop marker is queued first,
        so the directory is released from the cycle guard only after all of
        its subdirectories have been listed. Subdirectories are queued in
        reverse order so they come off the work list in listing order. "." and
        ".." found inside a directory are never queued.

        Args:
            ordering: The sorted batch.
            dirname: The directory the batch was read from, or None for the
                command-line arguments.
            command_line_arg: True when the batch holds command-line arguments.

        Returns:
            list[FileRecord]: The batch without the command-line directories,
                which are listed by expansion instead of as entries.
        """
        if dirname is not None and self.config.recursive:
            self.pending.appendleft(PopGuardMarker(dirname))

        for record in reversed(ordering):
            if not record.is_directory():
                continue
            if dirname is not None and record.name in (".", ".."):
                continue
            if dirname is None or record.name.startswith("/"):
                path = record.name
            else:
                path = concat_path(dirname, record.name)
            self.queue_directory(path, record.link_target, command_line_arg)

        return [r for r in ordering if r.file_type != FileType.ARG_DIRECTORY]

    def _close_abandoned(self, handle: DirectoryHandle) -> None:
        try:
            handle.close()
        except DirectoryCloseError:
            # Nothing was listed from this directory.
            return

    def open_directory(
        self, name: str, command_line_arg: bool
    ) -> DirectoryHandle | None:
        """
        Open a directory for listing and register it with the cycle guard.

        Args:
            name: Path of the directory.
            command_line_arg: True if the directory was named on the command line.

        Returns:
            The open handle, or None if the directory cannot be opened, cannot
            be identified, or is already being listed.
        """
        try:
            handle = self.fs.open_directory(name)
        except DirectoryOpenError as e:
            self.file_failure(e, command_line_arg)
            return None

        if not self.config.recursive:
            return handle

        try:
            device, inode = handle.identity()
        except DirectoryIdentityError as e:
            self.file_failure(e, command_line_arg)
            self._close_abandoned(handle)
            return None

        if not self.guard.visit(device, inode):
            self.diagnostics.notice(f"{name}: not listing already-listed directory")
            self.status.escalate(serious=True)
            self._close_abandoned(handle)
            return None

        return handle

    def read_directory(
        self, handle: DirectoryHandle, name: str, command_line_arg: bool
    ) -> None:
        """
        Replace the batch with the entries of an open directory, then close it.

        A read error ends the scan unless it is transient, in which case the
        handle resumes after the entries already read (see OsDirectoryHandle
        for the limits of resuming). A directory removed while being read
        simply ends.

        Args:
            handle: The directory, as returned by open_directory().
            name: Path of the directory.
            command_line_arg: True if the directory was named on the command line.
        """
        self.store.clear()
        while True:
            try:
                entry = handle.read_entry()
            except DirectoryReadError as e:
                if getattr(e.original_exception, "errno", None) == errno.ENOENT:
                    break
                self.file_failure(e, command_line_arg)
                if e.transient:
                    continue
                break
            if entry is None:
                break
            if not self.file_ignored(entry.name):
                self.gobble_file(entry.name, entry.type_hint, False, dirname=name)
            self.signals.process_pending()

        try:
            handle.close()
        except DirectoryCloseError as e:
            self.file_failure(e, command_line_arg)
