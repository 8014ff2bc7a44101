"""
Listing session.

A ListingSession owns the state of one run: the current batch, the cycle
guard, the pending-directory work list and the exit status. It lists the
command-line arguments first, then expands pending directories one at a time
until the work list is empty.
"""

import sys
from collections import deque
from typing import TextIO

from adapters.collation import Collator, LocaleCollator
from adapters.filesystem import FileSystem, OsFileSystem
from core.config import ListingConfig
from core.cycle_guard import CycleGuard
from core.models import (
    ExitStatusTracker,
    FileRecord,
    FileRecordStore,
    PendingDirectory,
    PopGuardMarker,
)
from core.sorting import SortDispatcher
from core.traversal import TraversalEngine
from models import ExitStatus, FileType, ListingFormat, SortKey
from ui.diagnostics import Diagnostics
from ui.signals import SignalCoordinator, TerminalSignalCoordinator
from ui.writer import ListingWriter


class ListingSession:
    """
    Drives one listing from command-line arguments to the final exit status.

    Attributes:
        store: The batch being listed.
        guard: Directories currently being expanded.
        pending: Work list of directories and guard pop markers, used as a stack.
        status: The escalate-only exit status.
        print_dir_name: Whether directory headers are printed for non-recursive
            listings; cleared when a single directory is the only thing listed.
    """

    def __init__(
        self,
        config: ListingConfig,
        diagnostics: Diagnostics,
        stream: TextIO | None = None,
        fs: FileSystem | None = None,
        collator: Collator | None = None,
        signals: SignalCoordinator | None = None,
        writer: ListingWriter | None = None,
    ):
        self.config = config
        self.diagnostics = diagnostics
        stream = stream if stream is not None else sys.stdout
        self.signals = signals or TerminalSignalCoordinator(stream)
        self.writer = writer or ListingWriter(config, stream, signals=self.signals)

        self.store = FileRecordStore()
        self.guard = CycleGuard()
        self.pending: deque[PendingDirectory] = deque()
        self.status = ExitStatusTracker()
        self.print_dir_name = True

        self.sorter = SortDispatcher(
            config, collator or LocaleCollator(), width_of=self.writer.name_width
        )
        self.engine = TraversalEngine(
            config,
            fs or OsFileSystem(),
            diagnostics,
            self.store,
            self.guard,
            self.pending,
            self.status,
            self.signals,
        )

    def sort_batch(self) -> list[FileRecord]:
        """
        Sort the current batch into a new ordering vector.

        Names are measured first when sorting or layout depends on their width.
        """
        config = self.config
        ordering = self.store.ordering()
        if (
            config.sort_key == SortKey.WIDTH
            or (config.line_length and config.multi_column)
            or config.align_outer_quotes
        ):
            self.writer.measure(ordering)
        return self.sorter.sort(ordering)

    def run(self, paths: list[str]) -> ExitStatus:
        """
        List the given paths, or the current directory if there are none.

        Args:
            paths: Names given on the command line.

        Returns:
            ExitStatus: The accumulated exit status.

        Raises:
            OutputWriteError: If the listing cannot be written.
            CollationError: If names cannot be compared even byte-wise.
        """
        config = self.config
        engine = self.engine

        if not paths:
            if config.immediate_dirs:
                engine.gobble_file(".", FileType.DIRECTORY, True)
            else:
                engine.queue_directory(".", None, True)
        for path in paths:
            engine.gobble_file(path, FileType.UNKNOWN, True)

        ordering: list[FileRecord] = []
        if len(self.store):
            ordering = self.sort_batch()
            if not config.immediate_dirs:
                ordering = engine.extract_dirs_from_files(ordering, None, True)

        if ordering:
            self.writer.print_files(ordering)
            if self.pending:
                self.writer.write("\n")
        elif len(paths) <= 1 and len(self.pending) == 1:
            self.print_dir_name = False

        while self.pending:
            item = self.pending.popleft()
            if isinstance(item, PopGuardMarker):
                self.guard.leave()
                continue
            self.print_dir(item.path, item.real_name, item.command_line_arg)
            self.print_dir_name = True

        self.writer.flush()
        self.signals.finish()
        assert self.guard.is_empty(), "cycle guard not empty after listing"
        return self.status.status

    def print_dir(
        self, name: str, real_name: str | None, command_line_arg: bool
    ) -> None:
        """
        List the contents of one directory.

        Args:
            name: Path used to open the directory.
            real_name: Name shown in the header instead of name, if any.
            command_line_arg: True if the directory was named on the command line.
        """
        config = self.config
        handle = self.engine.open_directory(name, command_line_arg)
        if handle is None:
            return

        if config.recursive or self.print_dir_name:
            self.writer.print_header(real_name or name)

        self.engine.read_directory(handle, name, command_line_arg)
        ordering = self.sort_batch()
        if config.recursive:
            ordering = self.engine.extract_dirs_from_files(ordering, name, False)

        if config.format == ListingFormat.LONG or config.print_block_size:
            self.writer.print_total(ordering)
        if ordering:
            self.writer.print_files(ordering)
