"""
Tests for the traversal engine.

Tests cover:
- Ignore rules: hidden names, ".", "..", hide and ignore patterns
- Lazy metadata: which entries are fetched under which configuration
- gobble_file: dropped arguments, failed entries, argument directories, links
- extract_dirs_from_files: work-list order and the guard pop marker
- open_directory: cycle detection
- read_directory: transient and fatal read errors
"""

import errno
import os
import stat

import pytest

from adapters.filesystem import MockFileSystem
from core.config import ListingConfig
from core.exceptions import DirectoryReadError, MetadataFetchError
from core.models import ExpandDirectory, PopGuardMarker
from core.traversal import attach, concat_path, pattern_matches
from models import (
    DereferencePolicy,
    ExitStatus,
    FileType,
    IgnoreMode,
    IndicatorStyle,
    ListingFormat,
    SortKey,
)

VISIBLE = ["a.txt", "b.txt", "c.txt", "empty", "sub"]


def _read(engine, name=".", command_line_arg=True):
    handle = engine.open_directory(name, command_line_arg)
    assert handle is not None
    engine.read_directory(handle, name, command_line_arg)
    return sorted(r.name for r in engine.store)


# ============================================================================
# Tests for path helpers
# ============================================================================


@pytest.mark.unit
def test_attach_omits_current_directory():
    """Entries of "." keep their bare name."""
    assert attach(".", "a.txt") == "a.txt"
    assert attach("sub", "a.txt") == "sub/a.txt"
    assert attach("/", "etc") == "/etc"


@pytest.mark.unit
def test_concat_path_keeps_current_directory():
    """Pending subdirectories of "." are named "./name"."""
    assert concat_path(".", "sub") == "./sub"
    assert concat_path("a/", "b") == "a/b"


@pytest.mark.unit
def test_pattern_leading_dot_is_literal():
    """A wildcard never matches a leading dot."""
    assert pattern_matches("*~", "notes~")
    assert not pattern_matches("*", ".hidden")
    assert pattern_matches(".*", ".hidden")
    assert not pattern_matches("*.o", "a.c")


# ============================================================================
# Tests for file_ignored
# ============================================================================


@pytest.mark.unit
def test_default_mode_hides_dot_names(engine_factory):
    """The default mode hides every name starting with a dot."""
    engine = engine_factory(ListingConfig())

    assert engine.file_ignored(".hidden")
    assert engine.file_ignored(".")
    assert not engine.file_ignored("visible")


@pytest.mark.unit
def test_almost_all_hides_only_dot_and_dotdot(engine_factory):
    """DOT_AND_DOTDOT hides "." and ".." only."""
    engine = engine_factory(ListingConfig(ignore_mode=IgnoreMode.DOT_AND_DOTDOT))

    assert engine.file_ignored(".")
    assert engine.file_ignored("..")
    assert not engine.file_ignored(".hidden")


@pytest.mark.unit
def test_minimal_mode_hides_nothing(engine_factory):
    """MINIMAL shows "." and ".." too."""
    engine = engine_factory(ListingConfig(ignore_mode=IgnoreMode.MINIMAL))

    assert not engine.file_ignored(".")
    assert not engine.file_ignored("..")


@pytest.mark.unit
def test_hide_patterns_apply_only_in_default_mode(engine_factory):
    """Hide patterns are overridden by showing almost all entries."""
    default = engine_factory(ListingConfig(hide_patterns=("*~",)))
    almost_all = engine_factory(
        ListingConfig(hide_patterns=("*~",), ignore_mode=IgnoreMode.DOT_AND_DOTDOT)
    )

    assert default.file_ignored("notes~")
    assert not almost_all.file_ignored("notes~")


@pytest.mark.unit
def test_ignore_patterns_apply_in_every_mode(engine_factory):
    """Ignore patterns are never overridden."""
    engine = engine_factory(
        ListingConfig(ignore_patterns=("*.o",), ignore_mode=IgnoreMode.MINIMAL)
    )

    assert engine.file_ignored("main.o")
    assert not engine.file_ignored("main.c")


# ============================================================================
# Tests for lazy metadata fetching
# ============================================================================


@pytest.mark.unit
@pytest.mark.mock
def test_plain_listing_fetches_no_metadata(engine_factory, listing_root):
    """Names sorted by name, no indicators: the scan alone is enough."""
    fs = MockFileSystem()
    engine = engine_factory(ListingConfig(), fs)

    assert _read(engine) == VISIBLE
    assert fs.metadata_calls == []
    assert all(not r.stat_ok for r in engine.store)


@pytest.mark.unit
@pytest.mark.mock
def test_unknown_hint_is_fetched_when_type_needed(engine_factory, listing_root):
    """Only the entry whose scan type is unknown is fetched."""
    fs = MockFileSystem(hint_overrides={"a.txt": FileType.UNKNOWN})
    engine = engine_factory(ListingConfig(recursive=True), fs)

    _read(engine)

    assert fs.lstat_calls == ["a.txt"]
    assert fs.stat_calls == []
    record = next(r for r in engine.store if r.name == "a.txt")
    assert record.stat_ok
    assert record.file_type == FileType.REGULAR


@pytest.mark.unit
@pytest.mark.mock
def test_unknown_hint_skipped_when_type_not_needed(engine_factory, listing_root):
    """An unknown type is left alone when nothing needs it."""
    fs = MockFileSystem(hint_overrides={"a.txt": FileType.UNKNOWN})
    engine = engine_factory(ListingConfig(), fs)

    _read(engine)

    assert fs.metadata_calls == []


@pytest.mark.unit
@pytest.mark.mock
@pytest.mark.parametrize(
    "overrides",
    [
        {"format": ListingFormat.LONG},
        {"sort_key": SortKey.SIZE},
        {"sort_key": SortKey.TIME},
        {"print_block_size": True},
        {"print_inode": True},
    ],
)
def test_every_entry_fetched(engine_factory, listing_root, overrides):
    """Long format, size or time sorting, blocks and inodes need every entry."""
    fs = MockFileSystem()
    engine = engine_factory(ListingConfig(**overrides), fs)

    _read(engine)

    assert sorted(fs.metadata_calls) == VISIBLE


@pytest.mark.unit
@pytest.mark.mock
def test_classify_fetches_only_regular_files(engine_factory, listing_root):
    """Executable marks need the mode of regular files only."""
    fs = MockFileSystem()
    engine = engine_factory(ListingConfig(indicator_style=IndicatorStyle.CLASSIFY), fs)

    _read(engine)

    assert sorted(fs.metadata_calls) == ["a.txt", "b.txt", "c.txt"]


@pytest.mark.unit
def test_command_line_arguments_always_fetched(engine_factory):
    """Arguments never come with a type hint."""
    engine = engine_factory(ListingConfig())
    assert engine.should_fetch_metadata(FileType.UNKNOWN, True)
    assert engine.should_fetch_metadata(FileType.REGULAR, True)
    assert not engine.should_fetch_metadata(FileType.REGULAR, False)


# ============================================================================
# Tests for gobble_file
# ============================================================================


@pytest.mark.unit
def test_missing_argument_is_dropped(engine_factory, listing_root, diagnostics):
    """An inaccessible argument is reported, dropped and serious."""
    engine = engine_factory(ListingConfig())

    assert engine.gobble_file("nope", FileType.UNKNOWN, True) is None

    assert len(engine.store) == 0
    assert engine.status.status == ExitStatus.SERIOUS_TROUBLE
    assert isinstance(diagnostics.errors[0], MetadataFetchError)
    assert diagnostics.messages == [
        "cannot access 'nope': No such file or directory"
    ]


@pytest.mark.unit
@pytest.mark.mock
def test_failed_entry_is_kept_without_metadata(
    engine_factory, listing_root, diagnostics
):
    """An entry whose metadata cannot be fetched is still listed."""
    fs = MockFileSystem(
        errors={("lstat", "a.txt"): OSError(errno.EACCES, "Permission denied")}
    )
    engine = engine_factory(ListingConfig(format=ListingFormat.LONG), fs)

    assert _read(engine, command_line_arg=False) == VISIBLE

    failed = next(r for r in engine.store if r.name == "a.txt")
    assert not failed.stat_ok
    assert failed.stat is None
    assert engine.status.status == ExitStatus.MINOR_PROBLEM
    assert diagnostics.messages == ["cannot access 'a.txt': Permission denied"]


@pytest.mark.unit
def test_argument_directory_is_marked(engine_factory, listing_root):
    """A directory named on the command line is listed by expansion."""
    engine = engine_factory(ListingConfig())
    record = engine.gobble_file("sub", FileType.UNKNOWN, True)
    assert record.file_type == FileType.ARG_DIRECTORY


@pytest.mark.unit
def test_argument_directory_listed_as_entry(engine_factory, listing_root):
    """With immediate_dirs the directory stays a plain entry."""
    engine = engine_factory(ListingConfig(immediate_dirs=True))
    record = engine.gobble_file("sub", FileType.UNKNOWN, True)
    assert record.file_type == FileType.DIRECTORY


@pytest.mark.unit
@pytest.mark.mock
def test_symlink_target_read_in_long_format(engine_factory, tmp_path, monkeypatch):
    """Long format reads the link target and, for indicators, its mode."""
    (tmp_path / "target").mkdir()
    os.symlink("target", tmp_path / "link")
    os.symlink("missing", tmp_path / "dangling")
    monkeypatch.chdir(tmp_path)

    fs = MockFileSystem()
    engine = engine_factory(
        ListingConfig(format=ListingFormat.LONG, indicator_style=IndicatorStyle.CLASSIFY),
        fs,
    )
    _read(engine)

    records = {r.name: r for r in engine.store}
    link = records["link"]
    assert link.file_type == FileType.SYMLINK
    assert link.link_target == "target"
    assert link.link_ok
    assert stat.S_ISDIR(link.link_mode)

    dangling = records["dangling"]
    assert dangling.link_target == "missing"
    assert not dangling.link_ok
    assert sorted(fs.readlink_calls) == ["dangling", "link"]
    assert engine.status.status == ExitStatus.SUCCESS


@pytest.mark.unit
def test_dereference_always_follows_entries(engine_factory, tmp_path, monkeypatch):
    """With every link followed, a link to a directory is a directory."""
    (tmp_path / "target").mkdir()
    os.symlink("target", tmp_path / "link")
    monkeypatch.chdir(tmp_path)

    engine = engine_factory(
        ListingConfig(format=ListingFormat.LONG, dereference=DereferencePolicy.ALWAYS)
    )
    _read(engine)

    records = {r.name: r for r in engine.store}
    assert records["link"].file_type == FileType.DIRECTORY


@pytest.mark.unit
def test_command_line_link_to_file_not_followed(engine_factory, tmp_path, monkeypatch):
    """The default policy follows argument links only to directories."""
    (tmp_path / "file").write_text("x")
    (tmp_path / "dir").mkdir()
    os.symlink("file", tmp_path / "file-link")
    os.symlink("dir", tmp_path / "dir-link")
    monkeypatch.chdir(tmp_path)

    engine = engine_factory(ListingConfig())

    assert engine.gobble_file("file-link", FileType.UNKNOWN, True).file_type == (
        FileType.SYMLINK
    )
    assert engine.gobble_file("dir-link", FileType.UNKNOWN, True).file_type == (
        FileType.ARG_DIRECTORY
    )


# ============================================================================
# Tests for extract_dirs_from_files
# ============================================================================


@pytest.mark.unit
def test_argument_directories_queued_in_order(engine_factory, listing_root):
    """Directories come off the work list in listing order."""
    engine = engine_factory(ListingConfig())
    for name in ["a.txt", "empty", "sub"]:
        engine.gobble_file(name, FileType.UNKNOWN, True)

    remaining = engine.extract_dirs_from_files(engine.store.ordering(), None, True)

    assert [r.name for r in remaining] == ["a.txt"]
    assert list(engine.pending) == [
        ExpandDirectory("empty", None, True),
        ExpandDirectory("sub", None, True),
    ]


@pytest.mark.unit
def test_recursive_extraction_queues_pop_marker_last(engine_factory, make_record):
    """The pop marker sits behind every subdirectory of the expanded directory."""
    engine = engine_factory(ListingConfig(recursive=True))
    ordering = [
        make_record(".", mode=stat.S_IFDIR | 0o755),
        make_record("a.txt"),
        make_record("empty", mode=stat.S_IFDIR | 0o755),
        make_record("sub", mode=stat.S_IFDIR | 0o755),
    ]

    remaining = engine.extract_dirs_from_files(ordering, ".", False)

    assert remaining == ordering
    assert list(engine.pending) == [
        ExpandDirectory("./empty", None, False),
        ExpandDirectory("./sub", None, False),
        PopGuardMarker("."),
    ]


# ============================================================================
# Tests for open_directory and read_directory
# ============================================================================


@pytest.mark.unit
def test_open_failure_reported(engine_factory, listing_root, diagnostics):
    """A directory that cannot be opened yields no handle."""
    engine = engine_factory(ListingConfig())

    assert engine.open_directory("missing", True) is None
    assert engine.status.status == ExitStatus.SERIOUS_TROUBLE
    assert diagnostics.messages == [
        "cannot open directory 'missing': No such file or directory"
    ]


@pytest.mark.unit
def test_cycle_detected(engine_factory, cyclic_root, diagnostics):
    """A directory reached again while being listed is refused."""
    engine = engine_factory(
        ListingConfig(recursive=True, dereference=DereferencePolicy.ALWAYS)
    )

    handle = engine.open_directory("root", True)
    assert handle is not None
    assert engine.open_directory("root/sub/link", False) is None
    handle.close()

    assert diagnostics.notices == [
        "root/sub/link: not listing already-listed directory"
    ]
    assert engine.status.status == ExitStatus.SERIOUS_TROUBLE
    assert len(engine.guard) == 1


@pytest.mark.unit
def test_guard_not_used_without_recursion(engine_factory, cyclic_root):
    """Non-recursive listings never register directories."""
    engine = engine_factory(ListingConfig())

    handle = engine.open_directory("root", True)
    handle.close()

    assert engine.guard.is_empty()


@pytest.mark.unit
@pytest.mark.mock
def test_transient_read_error_continues(engine_factory, listing_root, diagnostics):
    """EOVERFLOW loses one entry at most; the scan continues."""
    fs = MockFileSystem(
        errors={("read", "."): [OSError(errno.EOVERFLOW, "Value too large")]}
    )
    engine = engine_factory(ListingConfig(), fs)

    assert _read(engine, command_line_arg=False) == VISIBLE
    assert engine.status.status == ExitStatus.MINOR_PROBLEM
    assert isinstance(diagnostics.errors[0], DirectoryReadError)


@pytest.mark.unit
@pytest.mark.mock
def test_fatal_read_error_stops_scan(engine_factory, listing_root, diagnostics):
    """Any other read error ends the scan of that directory."""
    fs = MockFileSystem(errors={("read", "."): [OSError(errno.EIO, "Input/output error")]})
    engine = engine_factory(ListingConfig(), fs)

    assert _read(engine, command_line_arg=False) == []
    assert engine.status.status == ExitStatus.MINOR_PROBLEM
    assert diagnostics.messages == ["reading directory '.': Input/output error"]


@pytest.mark.unit
@pytest.mark.mock
def test_vanished_directory_ends_silently(engine_factory, listing_root, diagnostics):
    """ENOENT while reading means the directory was removed; no error."""
    fs = MockFileSystem(errors={("read", "."): [OSError(errno.ENOENT, "gone")]})
    engine = engine_factory(ListingConfig(), fs)

    assert _read(engine) == []
    assert diagnostics.errors == []
    assert engine.status.status == ExitStatus.SUCCESS


@pytest.mark.unit
@pytest.mark.mock
def test_close_error_reported(engine_factory, listing_root, diagnostics):
    """A failing close is reported once the entries are read."""
    fs = MockFileSystem(errors={("close", "."): OSError(errno.EIO, "Input/output error")})
    engine = engine_factory(ListingConfig(), fs)

    assert _read(engine, command_line_arg=False) == VISIBLE
    assert diagnostics.messages == ["closing directory '.': Input/output error"]
