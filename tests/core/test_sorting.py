"""
Tests for the multi-key sort dispatcher.

Tests cover:
- Key comparators: name, size, time, extension, width, version
- Direction: reversal of the key comparison
- Directory grouping: directories first in both directions
- SortKey.NONE: scan order preserved
- Collation fallback: a failing locale comparison restarts the sort byte-wise
"""

import stat
from types import SimpleNamespace

import pytest

from adapters.collation import ByteCollator, MockCollator
from core.exceptions import CollationError
from core.models import FileRecord
from core.sorting import (
    SortDispatcher,
    extension_of,
    timestamp_ns,
)
from models import SortKey, TimeType


def _names(records):
    return [r.name for r in records]


# ============================================================================
# Tests for key comparators
# ============================================================================


@pytest.mark.unit
def test_size_sort_breaks_ties_by_name(make_config, make_record):
    """Largest first, equal sizes by name: b.txt, a.txt, c.txt."""
    records = [
        make_record("b.txt", size=100),
        make_record("a.txt", size=5),
        make_record("c.txt", size=5),
    ]
    sorter = SortDispatcher(make_config(sort_key=SortKey.SIZE), ByteCollator())

    assert _names(sorter.sort(records)) == ["b.txt", "a.txt", "c.txt"]


@pytest.mark.unit
def test_name_sort(make_config):
    """Names sort with the collator."""
    records = [FileRecord(n) for n in ["c", "a", "B", "b"]]
    sorter = SortDispatcher(make_config(sort_key=SortKey.NAME), ByteCollator())

    assert _names(sorter.sort(records)) == ["B", "a", "b", "c"]


@pytest.mark.unit
def test_time_sort_newest_first(make_config, make_record):
    """Newer entries first; equal times by name."""
    records = [
        make_record("old", mtime_ns=1_000),
        make_record("new", mtime_ns=3_000),
        make_record("mid-b", mtime_ns=2_000),
        make_record("mid-a", mtime_ns=2_000),
    ]
    sorter = SortDispatcher(make_config(sort_key=SortKey.TIME), ByteCollator())

    assert _names(sorter.sort(records)) == ["new", "mid-a", "mid-b", "old"]


@pytest.mark.unit
def test_timestamp_without_metadata_is_zero():
    """Records whose metadata was not fetched count as time 0."""
    assert timestamp_ns(FileRecord("x"), TimeType.MTIME) == 0


@pytest.mark.unit
def test_birth_time_unavailable_is_negative():
    """Platforms without birth time report -1."""
    record = FileRecord("x")
    record.stat = SimpleNamespace(st_mtime_ns=5)
    assert timestamp_ns(record, TimeType.BTIME) == -1


@pytest.mark.unit
def test_extension_of():
    """The extension runs from the last dot."""
    assert extension_of("a.tar.gz") == ".gz"
    assert extension_of("Makefile") == ""
    assert extension_of(".bashrc") == ".bashrc"


@pytest.mark.unit
def test_extension_sort(make_config):
    """Names without extension first, then by extension, then by name."""
    records = [FileRecord(n) for n in ["b.txt", "a.py", "c", "a.txt"]]
    sorter = SortDispatcher(make_config(sort_key=SortKey.EXTENSION), ByteCollator())

    assert _names(sorter.sort(records)) == ["c", "a.py", "a.txt", "b.txt"]


@pytest.mark.unit
def test_width_sort_uses_width_function(make_config):
    """Narrower names first, measured by the supplied width function."""
    records = [FileRecord(n) for n in ["ccc", "a", "bb", "dd"]]
    sorter = SortDispatcher(
        make_config(sort_key=SortKey.WIDTH),
        ByteCollator(),
        width_of=lambda r: len(r.name),
    )

    assert _names(sorter.sort(records)) == ["a", "bb", "dd", "ccc"]


@pytest.mark.unit
def test_width_sort_defaults_to_cached_width(make_config):
    """Without a width function the cached record width is used."""
    wide = FileRecord("a")
    wide.width = 10
    narrow = FileRecord("b")
    narrow.width = 1
    sorter = SortDispatcher(make_config(sort_key=SortKey.WIDTH), ByteCollator())

    assert _names(sorter.sort([wide, narrow])) == ["b", "a"]


@pytest.mark.unit
def test_version_sort(make_config):
    """Version sort orders digit runs numerically."""
    records = [FileRecord(n) for n in ["a10", "a2", "a1"]]
    sorter = SortDispatcher(make_config(sort_key=SortKey.VERSION), ByteCollator())

    assert _names(sorter.sort(records)) == ["a1", "a2", "a10"]


@pytest.mark.unit
@pytest.mark.mock
def test_version_sort_never_collates(make_config):
    """Version sort does not consult the collator."""
    collator = MockCollator()
    records = [FileRecord(n) for n in ["a10", "a2"]]
    SortDispatcher(make_config(sort_key=SortKey.VERSION), collator).sort(records)

    assert collator.compare_calls == []


# ============================================================================
# Tests for direction and grouping
# ============================================================================


@pytest.mark.unit
def test_reverse_inverts_distinct_keys(make_config, make_record):
    """With distinct keys, reversing yields the exact reverse order."""
    records = [make_record(n, size=s) for n, s in [("x", 3), ("y", 1), ("z", 2)]]
    forward = SortDispatcher(make_config(sort_key=SortKey.SIZE), ByteCollator())
    backward = SortDispatcher(
        make_config(sort_key=SortKey.SIZE, reverse=True), ByteCollator()
    )

    assert _names(backward.sort(records)) == list(reversed(_names(forward.sort(records))))


@pytest.mark.unit
def test_reverse_applies_to_name_tie_break(make_config, make_record):
    """Reversal swaps the whole key comparison, tie-break included."""
    records = [make_record("a", size=5), make_record("b", size=5)]
    sorter = SortDispatcher(
        make_config(sort_key=SortKey.SIZE, reverse=True), ByteCollator()
    )

    assert _names(sorter.sort(records)) == ["b", "a"]


@pytest.mark.unit
@pytest.mark.parametrize("reverse", [False, True])
def test_directories_first_in_both_directions(make_config, make_record, reverse):
    """Directory grouping is applied outside reversal."""
    records = [
        make_record("afile"),
        make_record("zdir", mode=stat.S_IFDIR | 0o755),
        make_record("bdir", mode=stat.S_IFDIR | 0o755),
        make_record("zfile"),
    ]
    sorter = SortDispatcher(
        make_config(directories_first=True, reverse=reverse), ByteCollator()
    )
    names = _names(sorter.sort(records))

    assert set(names[:2]) == {"zdir", "bdir"}
    if reverse:
        assert names == ["zdir", "bdir", "zfile", "afile"]
    else:
        assert names == ["bdir", "zdir", "afile", "zfile"]


@pytest.mark.unit
def test_links_to_directories_group_with_directories(make_config, make_record):
    """A symbolic link to a directory counts as a directory for grouping."""
    link = make_record("alink", mode=stat.S_IFLNK | 0o777)
    link.link_mode = stat.S_IFDIR | 0o755
    records = [make_record("afile"), link]
    sorter = SortDispatcher(make_config(directories_first=True), ByteCollator())

    assert _names(sorter.sort(records)) == ["alink", "afile"]


@pytest.mark.unit
def test_unsorted_keeps_scan_order(make_config, make_record):
    """SortKey.NONE keeps scan order, even with directory grouping."""
    records = [make_record("b"), make_record("d", mode=stat.S_IFDIR), make_record("a")]
    sorter = SortDispatcher(
        make_config(sort_key=SortKey.NONE, directories_first=True), ByteCollator()
    )

    result = sorter.sort(records)
    assert _names(result) == ["b", "d", "a"]
    assert result is not records


# ============================================================================
# Tests for the collation fallback
# ============================================================================


@pytest.mark.unit
@pytest.mark.mock
def test_collation_failure_falls_back_to_byte_order(make_config):
    """A failure mid-sort discards partial work and re-sorts byte-wise."""
    names = ["delta", "alpha", "charlie", "bravo", "echo"]
    records = [FileRecord(n) for n in names]
    collator = MockCollator(fail_after=2)
    sorter = SortDispatcher(make_config(), collator)

    result = sorter.sort(records)

    assert sorter.fallback_used is True
    assert collator.failures == 1
    assert _names(result) == sorted(names)
    assert _names(records) == names


@pytest.mark.unit
@pytest.mark.mock
def test_fallback_result_equals_byte_sort(make_config, make_record):
    """The fallback result is exactly the byte-wise sort of the same batch."""
    records = [make_record(n, size=s) for n, s in [("b", 1), ("a", 1), ("c", 2), ("d", 1)]]
    config = make_config(sort_key=SortKey.SIZE)

    failing = SortDispatcher(config, MockCollator(fail_on={"a"}))
    reference = SortDispatcher(config, ByteCollator())

    assert failing.sort(records) == reference.sort(records)
    assert failing.fallback_used is True
    assert reference.fallback_used is False


@pytest.mark.unit
@pytest.mark.mock
def test_successful_collation_does_not_fall_back(make_config):
    """The fallback is not used when every comparison succeeds."""
    collator = MockCollator(compare_fn=lambda a, b: (a.lower() > b.lower()) - (a.lower() < b.lower()))
    sorter = SortDispatcher(make_config(), collator)

    result = sorter.sort([FileRecord(n) for n in ["b", "A", "c"]])

    assert _names(result) == ["A", "b", "c"]
    assert sorter.fallback_used is False


@pytest.mark.unit
@pytest.mark.mock
def test_failing_fallback_propagates(make_config):
    """If the byte-wise retry fails too, the error propagates."""
    sorter = SortDispatcher(
        make_config(),
        MockCollator(fail_after=0),
        fallback=MockCollator(fail_after=0),
    )

    with pytest.raises(CollationError):
        sorter.sort([FileRecord("a"), FileRecord("b")])
