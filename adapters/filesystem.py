"""
Filesystem access for the traversal engine.

The traversal engine never calls os directly: it opens directories, reads
their entries one at a time, and fetches metadata through a FileSystem. OS
errors are translated into the exceptions of core.exceptions so that every
failure carries the offending path. MockFileSystem wraps a real file system to
record calls and inject failures in tests.
"""

import errno
import os
from dataclasses import dataclass
from types import TracebackType
from typing import Callable, Protocol

from core.exceptions import (
    DirectoryCloseError,
    DirectoryIdentityError,
    DirectoryOpenError,
    DirectoryReadError,
    MetadataFetchError,
    SymlinkReadError,
)
from models import FileType

_OPEN_FLAGS = os.O_RDONLY | getattr(os, "O_DIRECTORY", 0) | getattr(os, "O_CLOEXEC", 0)


@dataclass(frozen=True)
class DirectoryEntry:
    """
    One name read from a directory.

    Attributes:
        name: The entry name.
        type_hint: Type as reported cheaply by the scan; UNKNOWN when the scan
            could not tell without a metadata fetch.
    """

    name: str
    type_hint: FileType = FileType.UNKNOWN


class DirectoryHandle(Protocol):
    """
    An open directory being read.

    Used as a context manager; leaving the context closes the directory.
    """

    path: str

    def __enter__(self) -> "DirectoryHandle": ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...

    def identity(self) -> tuple[int, int]:
        """
        Return the (device, inode) pair of the open directory.

        Raises:
            DirectoryIdentityError: If the directory cannot be stat'ed.
        """

    def read_entry(self) -> DirectoryEntry | None:
        """
        Read the next entry.

        Returns:
            The next entry, or None at the end of the directory.

        Raises:
            DirectoryReadError: If reading fails. When the error is transient
                only one entry was lost and reading may continue.
        """

    def close(self) -> None:
        """
        Close the directory.

        Raises:
            DirectoryCloseError: If closing fails.
        """


class FileSystem(Protocol):
    """
    Protocol for the filesystem operations the traversal engine needs.
    """

    def open_directory(self, path: str) -> DirectoryHandle:
        """
        Open a directory for reading.

        Raises:
            DirectoryOpenError: If the directory cannot be opened.
        """

    def stat(self, path: str) -> os.stat_result:
        """
        Fetch metadata, following symbolic links.

        Raises:
            MetadataFetchError: If the metadata cannot be fetched.
        """

    def lstat(self, path: str) -> os.stat_result:
        """
        Fetch metadata of the path itself, not following symbolic links.

        Raises:
            MetadataFetchError: If the metadata cannot be fetched.
        """

    def readlink(self, path: str) -> str:
        """
        Read the target of a symbolic link.

        Raises:
            SymlinkReadError: If the link cannot be read.
        """


def type_hint_of(entry: os.DirEntry) -> FileType:
    """
    Cheap type of a scandir entry.

    Only symbolic links, directories and regular files can be told apart from
    the scan itself; every other type is reported as UNKNOWN so that it is
    fetched when a type is needed.

    Args:
        entry: The entry returned by os.scandir.

    Returns:
        FileType: SYMLINK, DIRECTORY, REGULAR or UNKNOWN.
    """
    try:
        if entry.is_symlink():
            return FileType.SYMLINK
        if entry.is_dir(follow_symlinks=False):
            return FileType.DIRECTORY
        if entry.is_file(follow_symlinks=False):
            return FileType.REGULAR
    except OSError:
        return FileType.UNKNOWN
    return FileType.UNKNOWN


class OsDirectoryHandle:
    """
    Directory opened with os.open and read with os.scandir on its descriptor.

    os.scandir never reports "." and "..", so they are returned first, as
    directories, the way readdir reports them.

    A scandir iterator is finished after its first error, and closing it
    rewinds the shared descriptor. After a transient error the directory is
    therefore scanned again from the start, skipping the names already
    returned. If the new scan fails before returning anything new, the error
    is reported as not transient and the directory reads as ended.
    """

    def __init__(self, path: str, fd: int):
        self.path = path
        self._fd: int | None = fd
        self._iterator = None
        self._implied = [".", ".."]
        self._returned: set[str] = set()
        self._rescanning = False
        self._progress = True
        self._ended = False

    def __enter__(self) -> "OsDirectoryHandle":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def identity(self) -> tuple[int, int]:
        if self._fd is None:
            raise DirectoryIdentityError(file_path=self.path)
        try:
            result = os.fstat(self._fd)
        except OSError as e:
            raise DirectoryIdentityError(
                file_path=self.path, original_exception=e
            ) from e
        return result.st_dev, result.st_ino

    def _drop_iterator(self) -> None:
        if self._iterator is not None:
            self._iterator.close()
            self._iterator = None

    def _next_scandir_entry(self) -> os.DirEntry | None:
        if self._iterator is None:
            self._iterator = os.scandir(self._fd)
        for entry in self._iterator:
            if self._rescanning and entry.name in self._returned:
                continue
            return entry
        return None

    def read_entry(self) -> DirectoryEntry | None:
        if self._implied:
            return DirectoryEntry(self._implied.pop(0), FileType.DIRECTORY)
        if self._fd is None or self._ended:
            return None
        try:
            entry = self._next_scandir_entry()
        except OSError as e:
            self._drop_iterator()
            transient = e.errno == errno.EOVERFLOW and self._progress
            if transient:
                self._rescanning = True
                self._progress = False
            else:
                self._ended = True
            raise DirectoryReadError(
                file_path=self.path,
                original_exception=e,
                transient=transient,
            ) from e
        if entry is None:
            return None
        self._returned.add(entry.name)
        self._progress = True
        return DirectoryEntry(entry.name, type_hint_of(entry))

    def close(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        self._drop_iterator()
        try:
            os.close(fd)
        except OSError as e:
            raise DirectoryCloseError(file_path=self.path, original_exception=e) from e


class OsFileSystem:
    """
    FileSystem backed by the os module.
    """

    def open_directory(self, path: str) -> OsDirectoryHandle:
        try:
            fd = os.open(path, _OPEN_FLAGS)
        except OSError as e:
            raise DirectoryOpenError(file_path=path, original_exception=e) from e
        return OsDirectoryHandle(path, fd)

    def stat(self, path: str) -> os.stat_result:
        try:
            return os.stat(path)
        except OSError as e:
            raise MetadataFetchError(file_path=path, original_exception=e) from e

    def lstat(self, path: str) -> os.stat_result:
        try:
            return os.lstat(path)
        except OSError as e:
            raise MetadataFetchError(file_path=path, original_exception=e) from e

    def readlink(self, path: str) -> str:
        try:
            return os.readlink(path)
        except OSError as e:
            raise SymlinkReadError(file_path=path, original_exception=e) from e


class _MockDirectoryHandle:
    """Wraps a real handle, overriding hints and injecting read errors."""

    def __init__(self, inner: DirectoryHandle, owner: "MockFileSystem"):
        self.path = inner.path
        self._inner = inner
        self._owner = owner

    def __enter__(self) -> "_MockDirectoryHandle":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def identity(self) -> tuple[int, int]:
        error = self._owner._pop_error("identity", self.path)
        if error is not None:
            raise DirectoryIdentityError(
                file_path=self.path, original_exception=error
            ) from error
        return self._inner.identity()

    def read_entry(self) -> DirectoryEntry | None:
        error = self._owner._pop_error("read", self.path)
        if error is not None:
            raise DirectoryReadError(
                file_path=self.path,
                original_exception=error,
                transient=error.errno == errno.EOVERFLOW,
            ) from error
        entry = self._inner.read_entry()
        if entry is None:
            return None
        hint = self._owner.hint_overrides.get(entry.name, entry.type_hint)
        return DirectoryEntry(entry.name, hint)

    def close(self) -> None:
        self._inner.close()
        error = self._owner._pop_error("close", self.path)
        if error is not None:
            raise DirectoryCloseError(
                file_path=self.path, original_exception=error
            ) from error


class MockFileSystem:
    """
    Mock implementation of FileSystem for testing.

    Delegates to a real file system (by default OsFileSystem, so tests can build
    trees under tmp_path) while recording every call and optionally failing
    selected operations.
    """

    def __init__(
        self,
        inner: FileSystem | None = None,
        errors: dict[tuple[str, str], OSError | list[OSError]] | None = None,
        hint_overrides: dict[str, FileType] | None = None,
        stat_fn: Callable[[str], os.stat_result] | None = None,
    ):
        """
        Initialize MockFileSystem with configurable behavior.

        Args:
            inner: The file system calls are delegated to. Defaults to OsFileSystem.
            errors: Map of (operation, path) to the OSError to raise, or a list of
                OSErrors raised by successive calls. Operations are "open",
                "identity", "read", "close", "stat", "lstat" and "readlink".
            hint_overrides: Map of entry name to the type hint reported for it.
            stat_fn: Optional replacement for both stat and lstat.

        Attributes (for test inspection):
            open_calls: Paths passed to open_directory().
            stat_calls: Paths passed to stat().
            lstat_calls: Paths passed to lstat().
            readlink_calls: Paths passed to readlink().
        """
        self.inner = inner or OsFileSystem()
        self.errors = dict(errors or {})
        self.hint_overrides = hint_overrides or {}
        self.stat_fn = stat_fn

        self.open_calls: list[str] = []
        self.stat_calls: list[str] = []
        self.lstat_calls: list[str] = []
        self.readlink_calls: list[str] = []

    @property
    def metadata_calls(self) -> list[str]:
        """Every path whose metadata was fetched, by stat or lstat."""
        return self.stat_calls + self.lstat_calls

    def _pop_error(self, operation: str, path: str) -> OSError | None:
        error = self.errors.get((operation, path))
        if isinstance(error, list):
            if not error:
                return None
            return error.pop(0)
        return error

    def open_directory(self, path: str) -> _MockDirectoryHandle:
        self.open_calls.append(path)
        error = self._pop_error("open", path)
        if error is not None:
            raise DirectoryOpenError(file_path=path, original_exception=error) from error
        return _MockDirectoryHandle(self.inner.open_directory(path), self)

    def stat(self, path: str) -> os.stat_result:
        self.stat_calls.append(path)
        error = self._pop_error("stat", path)
        if error is not None:
            raise MetadataFetchError(file_path=path, original_exception=error) from error
        if self.stat_fn is not None:
            return self.stat_fn(path)
        return self.inner.stat(path)

    def lstat(self, path: str) -> os.stat_result:
        self.lstat_calls.append(path)
        error = self._pop_error("lstat", path)
        if error is not None:
            raise MetadataFetchError(file_path=path, original_exception=error) from error
        if self.stat_fn is not None:
            return self.stat_fn(path)
        return self.inner.lstat(path)

    def readlink(self, path: str) -> str:
        self.readlink_calls.append(path)
        error = self._pop_error("readlink", path)
        if error is not None:
            raise SymlinkReadError(file_path=path, original_exception=error) from error
        return self.inner.readlink(path)
