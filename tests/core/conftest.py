"""
Shared fixtures for core module tests.

This module provides directory trees built under tmp_path and a factory that
wires a TraversalEngine to fresh session state, so traversal and session tests
can run against a real file system while recording every call.
"""

import os
from collections import deque

import pytest

from adapters.filesystem import MockFileSystem
from core.cycle_guard import CycleGuard
from core.models import ExitStatusTracker, FileRecordStore
from core.traversal import TraversalEngine


@pytest.fixture
def listing_root(tmp_path, monkeypatch):
    """
    A small tree, with the working directory set to its root.

    Layout:
        a.txt (5 bytes), b.txt (100 bytes), c.txt (5 bytes), .hidden,
        sub/ containing inner.txt, and empty/.
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "a.txt").write_text("x" * 5)
    (root / "b.txt").write_text("x" * 100)
    (root / "c.txt").write_text("x" * 5)
    (root / ".hidden").write_text("")
    (root / "sub").mkdir()
    (root / "sub" / "inner.txt").write_text("inner")
    (root / "empty").mkdir()
    monkeypatch.chdir(root)
    return root


@pytest.fixture
def cyclic_root(tmp_path, monkeypatch):
    """root/sub/link is a symbolic link back to root."""
    root = tmp_path / "root"
    (root / "sub").mkdir(parents=True)
    os.symlink(root, root / "sub" / "link")
    monkeypatch.chdir(tmp_path)
    return root


@pytest.fixture
def engine_factory(diagnostics):
    """Factory for a TraversalEngine over a MockFileSystem and fresh state."""

    def _factory(config, fs=None):
        fs = fs or MockFileSystem()
        return TraversalEngine(
            config,
            fs,
            diagnostics,
            FileRecordStore(),
            CycleGuard(),
            deque(),
            ExitStatusTracker(),
        )

    return _factory
