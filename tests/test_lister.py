"""Tests for tree listing against the local filesystem and mocked collaborators."""
from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import Mock

import pytest

from treesync.errors import FilesystemError, InvalidPathError, PathNotFoundError
from treesync.filters import hidden_filter, ignore_filter
from treesync.fs import LocalFileSystem
from treesync.models import FileStatus
from treesync.planner.lister import list_tree


def write(path: Path, content: str, mtime_ms: int | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime_ms is not None:
        os.utime(path, ns=(mtime_ms * 1_000_000, mtime_ms * 1_000_000))
    return path


class TestLocalListing:
    def test_lists_nested_files_with_metadata(self, tmp_path: Path):
        root = tmp_path / "src"
        write(root / "a.txt", "0123456789", mtime_ms=5_000)
        write(root / "sub" / "deep" / "b.txt", "xy", mtime_ms=7_000)

        snapshot = list_tree(LocalFileSystem(), root)

        assert set(snapshot) == {"a.txt", "sub/deep/b.txt"}
        a = snapshot["a.txt"]
        assert a.size == 10
        assert a.mtime_ms == 5_000
        assert a.abs_path == root / "a.txt"
        assert snapshot["sub/deep/b.txt"].size == 2
        assert snapshot.total_bytes == 12

    def test_directories_are_not_entries(self, tmp_path: Path):
        root = tmp_path / "src"
        (root / "empty" / "dir").mkdir(parents=True)
        write(root / "f", "x")

        assert set(list_tree(LocalFileSystem(), root)) == {"f"}

    def test_missing_root_is_empty_snapshot(self, tmp_path: Path):
        """First sync into a fresh target: no error, just nothing there."""
        missing = tmp_path / "does-not-exist"
        snapshot = list_tree(LocalFileSystem(), missing)
        assert len(snapshot) == 0
        assert snapshot.root == missing

    def test_selector_sees_relative_paths(self, tmp_path: Path):
        root = tmp_path / "src"
        write(root / "keep.txt", "k")
        write(root / ".hidden", "h")
        write(root / "_tmp" / "x.txt", "t")
        write(root / "logs" / "a.log", "l")

        seen: list[str] = []

        def selector(rel: str) -> bool:
            seen.append(rel)
            return hidden_filter(rel) and ignore_filter(["logs/**"])(rel)

        snapshot = list_tree(LocalFileSystem(), root, selector)

        assert set(snapshot) == {"keep.txt"}
        assert "_tmp/x.txt" in seen
        assert all(not s.startswith("/") for s in seen)

    def test_root_that_is_a_file(self, tmp_path: Path):
        f = write(tmp_path / "single.bin", "abc")
        snapshot = list_tree(LocalFileSystem(), f)
        assert set(snapshot) == {"."}
        assert snapshot["."].size == 3

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
    def test_unreadable_directory_is_fatal(self, tmp_path: Path):
        root = tmp_path / "src"
        locked = root / "locked"
        write(locked / "f", "x")
        locked.chmod(0)
        try:
            with pytest.raises(FilesystemError):
                list_tree(LocalFileSystem(), root)
        finally:
            locked.chmod(0o755)


class TestCollaboratorContract:
    def test_path_not_found_absorbed(self):
        fs = Mock()
        fs.list_recursive.side_effect = PathNotFoundError("gone")
        assert len(list_tree(fs, Path("/t"))) == 0

    def test_other_filesystem_errors_propagate(self):
        fs = Mock()
        fs.list_recursive.side_effect = FilesystemError("permission denied")
        with pytest.raises(FilesystemError, match="permission denied"):
            list_tree(fs, Path("/t"))

    def test_path_outside_root_is_invalid(self):
        fs = Mock()
        fs.list_recursive.return_value = [FileStatus(path=Path("/elsewhere/f"), size=1, mtime_ms=1)]
        with pytest.raises(InvalidPathError):
            list_tree(fs, Path("/t"))

    def test_duplicate_paths_are_invalid(self):
        fs = Mock()
        fs.list_recursive.return_value = [
            FileStatus(path=Path("/t/f"), size=1, mtime_ms=1),
            FileStatus(path=Path("/t/f"), size=2, mtime_ms=2),
        ]
        with pytest.raises(InvalidPathError, match="Duplicate"):
            list_tree(fs, Path("/t"))

    def test_no_selector_passes_no_predicate(self):
        fs = Mock()
        fs.list_recursive.return_value = []
        list_tree(fs, Path("/t"))
        fs.list_recursive.assert_called_once_with(Path("/t"), None)
