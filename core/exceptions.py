"""
Custom exception classes for dirls.

This module defines the exceptions raised while enumerating directories,
fetching entry metadata, comparing names and writing the listing. Filesystem
adapters translate OSError into these types so that the traversal engine can
tell a per-entry failure from a per-directory one, and report each with the
offending path and the underlying system error.
"""

import os
from typing import Optional


class ListingError(Exception):
    """
    Base exception for failures while producing a listing.

    Attributes:
        message: A human-readable error message describing what went wrong.
        file_path: The path involved in the failure, if any.
        original_exception: The underlying exception that caused this error, if any.
        diagnostic_info: A dictionary containing the exception type, details,
            errno and OS name.
    """

    default_message = "An error occurred while listing files"

    def __init__(
        self,
        message: Optional[str] = None,
        file_path: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.file_path = file_path
        self.original_exception = original_exception
        self.diagnostic_info = {
            "type": (
                type(original_exception).__name__ if original_exception else "Unknown"
            ),
            "details": str(original_exception) if original_exception else "No details",
            "errno": getattr(original_exception, "errno", None),
            "os_name": os.name,
        }

    @property
    def reason(self) -> Optional[str]:
        """The system error text (strerror) of the underlying OSError, if any."""
        if isinstance(self.original_exception, OSError):
            if self.original_exception.strerror:
                return self.original_exception.strerror
            if self.original_exception.errno:
                return os.strerror(self.original_exception.errno)
        return None


class FileAccessError(ListingError):
    """
    Raised when a file or directory cannot be accessed.

    Access errors are never fatal: they are reported with the offending path and
    escalate the exit status, and the listing continues with the next entry.
    """

    default_message = "cannot access"


class MetadataFetchError(FileAccessError):
    """Raised when stat or lstat fails for an entry."""

    default_message = "cannot access"


class DirectoryOpenError(FileAccessError):
    """Raised when a directory cannot be opened for reading."""

    default_message = "cannot open directory"


class DirectoryIdentityError(FileAccessError):
    """Raised when the device and inode of an open directory cannot be determined."""

    default_message = "cannot determine device and inode of"


class DirectoryReadError(FileAccessError):
    """
    Raised when reading the next entry of an open directory fails.

    Attributes:
        transient: True when only the current entry was lost and scanning may
            continue (EOVERFLOW); False when the directory stream is unusable.
    """

    default_message = "reading directory"

    def __init__(
        self,
        message: Optional[str] = None,
        file_path: Optional[str] = None,
        original_exception: Optional[Exception] = None,
        transient: bool = False,
    ):
        super().__init__(
            message=message,
            file_path=file_path,
            original_exception=original_exception,
        )
        self.transient = transient


class DirectoryCloseError(FileAccessError):
    """Raised when closing a directory descriptor fails."""

    default_message = "closing directory"


class SymlinkReadError(FileAccessError):
    """Raised when the target of a symbolic link cannot be read."""

    default_message = "cannot read symbolic link"


class OutputWriteError(ListingError):
    """
    Raised when the listing cannot be written to its output stream.

    This error is fatal: a partially written listing cannot be salvaged.
    """

    default_message = "write error"


class CollationError(Exception):
    """
    Raised when locale-aware comparison of two names fails.

    Attributes:
        left: The first name being compared.
        right: The second name being compared.
        message: A human-readable error message naming both files.
        original_exception: The error raised by the collation routine.
    """

    def __init__(
        self,
        left: str,
        right: str,
        original_exception: Optional[Exception] = None,
    ):
        self.left = left
        self.right = right
        self.original_exception = original_exception
        self.message = f"cannot compare file names {left!r} and {right!r}"
        super().__init__(self.message)
