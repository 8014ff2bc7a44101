"""
Tests for the collation adapters.

Tests cover:
- LocaleCollator: sign normalization, error translation
- ByteCollator: strcmp order over the file-system encoding
- MockCollator: configurable failures and call recording
"""

import pytest

from adapters.collation import ByteCollator, LocaleCollator, MockCollator
from core.exceptions import CollationError


# ============================================================================
# Tests for LocaleCollator
# ============================================================================


@pytest.mark.unit
@pytest.mark.mock
def test_locale_result_normalized(mocker):
    mocker.patch("adapters.collation.locale.strcoll", return_value=42)
    assert LocaleCollator().compare("a", "b") == 1


@pytest.mark.unit
@pytest.mark.mock
def test_locale_failure_raises_collation_error(mocker):
    mocker.patch(
        "adapters.collation.locale.strcoll",
        side_effect=ValueError("embedded null character"),
    )

    with pytest.raises(CollationError) as exc_info:
        LocaleCollator().compare("a\0", "b")

    assert exc_info.value.left == "a\0"
    assert exc_info.value.right == "b"
    assert isinstance(exc_info.value.original_exception, ValueError)


@pytest.mark.unit
def test_locale_equal_names():
    assert LocaleCollator().compare("same", "same") == 0


# ============================================================================
# Tests for ByteCollator
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "left, right, expected",
    [
        ("a", "b", -1),
        ("b", "a", 1),
        ("a", "a", 0),
        ("B", "a", -1),
        ("a", "ab", -1),
        ("", "a", -1),
    ],
)
def test_byte_order(left, right, expected):
    assert ByteCollator().compare(left, right) == expected


@pytest.mark.unit
def test_byte_order_of_undecodable_names():
    """Names carrying surrogate escapes compare by their original bytes."""
    high = b"\xff".decode("utf-8", "surrogateescape")
    assert ByteCollator().compare("z", high) == -1


# ============================================================================
# Tests for MockCollator
# ============================================================================


@pytest.mark.unit
@pytest.mark.mock
def test_mock_fail_after():
    collator = MockCollator(fail_after=1)

    assert collator.compare("a", "b") == -1
    with pytest.raises(CollationError):
        collator.compare("a", "b")
    assert collator.failures == 1
    assert collator.compare_calls == [("a", "b"), ("a", "b")]


@pytest.mark.unit
@pytest.mark.mock
def test_mock_fail_on():
    collator = MockCollator(fail_on={"bad"})

    assert collator.compare("a", "b") == -1
    with pytest.raises(CollationError):
        collator.compare("bad", "b")
    assert collator.compare("c", "b") == 1


@pytest.mark.unit
@pytest.mark.mock
def test_mock_compare_function():
    collator = MockCollator(compare_fn=lambda a, b: 0)
    assert collator.compare("x", "y") == 0
