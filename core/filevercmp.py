"""
Natural version ordering of file names.

Names are compared as sequences of non-digit and digit runs: non-digit runs
character by character (letters before other characters, "~" before
everything, even the end of the name), digit runs numerically. A trailing run
of suffixes such as ".tar.gz" is ignored on the first pass, so "foo-1.2.tar.gz"
orders by "foo-1.2". Names are compared as raw bytes; the locale is never
consulted.
"""

import os

_DOT = ord(".")
_TILDE = ord("~")
_ZERO = ord("0")


def _is_digit(c: int) -> bool:
    return 48 <= c <= 57


def _is_alpha(c: int) -> bool:
    return 65 <= c <= 90 or 97 <= c <= 122


def _order(s: bytes, pos: int) -> int:
    if pos == len(s):
        return 0
    c = s[pos]
    if _is_digit(c):
        return 0
    if _is_alpha(c):
        return c
    if c == _TILDE:
        return -1
    return c + 256


def _prefix_length(s: bytes) -> int:
    """
    Length of s without its longest suffix matching (\\.[A-Za-z~][A-Za-z0-9~]*)*$.

    The first character is never part of the suffix.
    """
    n = len(s)
    prefix_length = 0
    i = 0
    while i != n:
        i += 1
        prefix_length = i
        while i + 1 < n and s[i] == _DOT and (_is_alpha(s[i + 1]) or s[i + 1] == _TILDE):
            i += 2
            while i < n and (_is_alpha(s[i]) or _is_digit(s[i]) or s[i] == _TILDE):
                i += 1
    return prefix_length


def _verrevcmp(a: bytes, a_len: int, b: bytes, b_len: int) -> int:
    a = a[:a_len]
    b = b[:b_len]
    a_pos = 0
    b_pos = 0
    while a_pos < a_len or b_pos < b_len:
        first_diff = 0
        while (a_pos < a_len and not _is_digit(a[a_pos])) or (
            b_pos < b_len and not _is_digit(b[b_pos])
        ):
            a_c = _order(a, a_pos)
            b_c = _order(b, b_pos)
            if a_c != b_c:
                return a_c - b_c
            a_pos += 1
            b_pos += 1
        while a_pos < a_len and a[a_pos] == _ZERO:
            a_pos += 1
        while b_pos < b_len and b[b_pos] == _ZERO:
            b_pos += 1
        while (
            a_pos < a_len
            and b_pos < b_len
            and _is_digit(a[a_pos])
            and _is_digit(b[b_pos])
        ):
            if not first_diff:
                first_diff = a[a_pos] - b[b_pos]
            a_pos += 1
            b_pos += 1
        if a_pos < a_len and _is_digit(a[a_pos]):
            return 1
        if b_pos < b_len and _is_digit(b[b_pos]):
            return -1
        if first_diff:
            return first_diff
    return 0


def filevercmp(a: str | bytes, b: str | bytes) -> int:
    """
    Compare two file names in natural version order.

    The empty name sorts first. Names starting with "." sort before all
    others, with "." first and ".." second.

    Args:
        a: First name.
        b: Second name.

    Returns:
        int: Negative if a sorts first, positive if b sorts first, 0 if the
            names are equivalent (e.g. differ only in leading zeros).
    """
    a_bytes = os.fsencode(a)
    b_bytes = os.fsencode(b)

    if not a_bytes:
        return -1 if b_bytes else 0
    if not b_bytes:
        return 1

    if a_bytes[0] == _DOT:
        if b_bytes[0] != _DOT:
            return -1
        if a_bytes == b".":
            return 0 if b_bytes == b"." else -1
        if b_bytes == b".":
            return 1
        if a_bytes == b"..":
            return 0 if b_bytes == b".." else -1
        if b_bytes == b"..":
            return 1
    elif b_bytes[0] == _DOT:
        return 1

    a_prefix = _prefix_length(a_bytes)
    b_prefix = _prefix_length(b_bytes)
    one_pass_only = a_prefix == len(a_bytes) and b_prefix == len(b_bytes)

    result = _verrevcmp(a_bytes, a_prefix, b_bytes, b_prefix)
    if result or one_pass_only:
        return result
    return _verrevcmp(a_bytes, len(a_bytes), b_bytes, len(b_bytes))
