"""Tests for snapshot reconciliation and the same-file predicate."""
from __future__ import annotations

from pathlib import Path

import pytest

from treesync.errors import UpdateNotAllowedError
from treesync.models import FileEntry, ReconciliationPolicy, TreeSnapshot
from treesync.planner.reconciler import reconcile, same_file

SRC = Path("/src")
DST = Path("/dst")


def snap(root: Path, files: dict[str, tuple[int, int]]) -> TreeSnapshot:
    """Build a snapshot from {rel_path: (size, mtime_ms)}."""
    return TreeSnapshot(root=root, entries={
        rel: FileEntry(rel_path=rel, abs_path=root / rel, size=size, mtime_ms=mtime)
        for rel, (size, mtime) in files.items()
    })


def entry(size: int, mtime: int) -> FileEntry:
    return FileEntry(rel_path="a", abs_path=Path("/x/a"), size=size, mtime_ms=mtime)


class TestSameFile:
    def test_equal_size_equal_mtime_is_same(self):
        assert same_file(entry(10, 5), entry(10, 5))

    def test_equal_size_older_target_is_different(self):
        assert not same_file(entry(10, 10), entry(10, 5))

    def test_equal_size_newer_target_is_trusted(self):
        """A newer target is considered up to date even if content differs."""
        assert same_file(entry(10, 5), entry(10, 99))

    @pytest.mark.parametrize("source_mtime,target_mtime", [(5, 5), (5, 10), (10, 5)])
    def test_different_size_is_always_different(self, source_mtime, target_mtime):
        assert not same_file(entry(10, source_mtime), entry(11, target_mtime))


class TestScenarios:
    def test_a_new_file_is_copied(self):
        result = reconcile(snap(SRC, {"a": (10, 5)}), snap(DST, {}), ReconciliationPolicy())
        assert result.to_copy == {"a"}
        assert result.to_delete == set()

    def test_b_identical_file_is_left_alone(self):
        result = reconcile(snap(SRC, {"a": (10, 5)}), snap(DST, {"a": (10, 5)}),
                           ReconciliationPolicy(allow_update=False))
        assert result.to_copy == set()
        assert result.to_delete == set()

    def test_c_changed_file_without_update_fails(self):
        with pytest.raises(UpdateNotAllowedError) as exc:
            reconcile(snap(SRC, {"a": (10, 10)}), snap(DST, {"a": (10, 5)}),
                      ReconciliationPolicy(allow_update=False))
        assert exc.value.paths == ["a"]
        assert "update mode" in str(exc.value)

    def test_d_changed_file_with_update_is_copied_and_deleted(self):
        result = reconcile(snap(SRC, {"a": (10, 10)}), snap(DST, {"a": (10, 5)}),
                           ReconciliationPolicy(allow_update=True))
        assert result.to_copy == {"a"}
        assert result.to_delete == {"a"}
        assert result.updated == {"a"}

    def test_e_stale_target_file_deleted_when_allowed(self):
        result = reconcile(snap(SRC, {}), snap(DST, {"b": (5, 1)}),
                           ReconciliationPolicy(allow_delete=True))
        assert result.to_copy == set()
        assert result.to_delete == {"b"}


class TestPolicyGating:
    def test_stale_files_kept_without_delete(self):
        result = reconcile(snap(SRC, {"a": (1, 1)}), snap(DST, {"a": (1, 1), "old": (3, 3)}),
                           ReconciliationPolicy(allow_delete=False))
        assert result.to_delete == set()

    def test_new_files_copied_regardless_of_update_policy(self):
        for allow_update in (False, True):
            result = reconcile(snap(SRC, {"new": (1, 1)}), snap(DST, {}),
                               ReconciliationPolicy(allow_update=allow_update))
            assert result.to_copy == {"new"}

    def test_update_gate_checked_even_with_new_files(self):
        """No partial result: one changed file aborts the whole reconciliation."""
        source = snap(SRC, {"new": (1, 1), "changed": (2, 9)})
        target = snap(DST, {"changed": (3, 1)})
        with pytest.raises(UpdateNotAllowedError):
            reconcile(source, target, ReconciliationPolicy(allow_delete=True))

    def test_error_lists_every_changed_path(self):
        source = snap(SRC, {f"f{i}": (i + 1, 9) for i in range(8)})
        target = snap(DST, {f"f{i}": (i + 1, 1) for i in range(8)})
        with pytest.raises(UpdateNotAllowedError) as exc:
            reconcile(source, target, ReconciliationPolicy())
        assert len(exc.value.paths) == 8
        assert "3 more" in str(exc.value)


class TestProperties:
    def _mixed(self):
        source = snap(SRC, {"same": (1, 1), "changed": (2, 9), "new": (3, 3), "dir/new2": (4, 4)})
        target = snap(DST, {"same": (1, 1), "changed": (2, 1), "stale": (5, 5), "dir/stale2": (6, 6)})
        return source, target

    def test_copy_only_paths_are_source_only(self):
        source, target = self._mixed()
        result = reconcile(source, target, ReconciliationPolicy(allow_update=True, allow_delete=True))
        only_in_source = source.paths() - target.paths()
        for path in result.to_copy - result.to_delete:
            assert path in only_in_source
        assert result.to_copy & result.to_delete == {"changed"}

    def test_full_mixed_classification(self):
        source, target = self._mixed()
        result = reconcile(source, target, ReconciliationPolicy(allow_update=True, allow_delete=True))
        assert result.to_copy == {"changed", "new", "dir/new2"}
        assert result.to_delete == {"changed", "stale", "dir/stale2"}

    def test_idempotent_after_applying_plan(self):
        """Once the copies land, a second reconciliation has nothing to do."""
        source, target = self._mixed()
        policy = ReconciliationPolicy(allow_update=True, allow_delete=False)
        first = reconcile(source, target, policy)

        applied = dict(target.entries)
        for rel in first.to_delete:
            applied.pop(rel, None)
        for rel in first.to_copy:
            e = source[rel]
            applied[rel] = FileEntry(rel_path=rel, abs_path=DST / rel, size=e.size, mtime_ms=e.mtime_ms)

        second = reconcile(source, TreeSnapshot(root=DST, entries=applied), policy)
        assert second.to_copy == set()
        assert second.to_delete == set()

    def test_listing_order_does_not_matter(self):
        files = {"a": (1, 1), "b": (2, 2), "c": (3, 3)}
        forward = snap(SRC, files)
        backward = snap(SRC, dict(reversed(list(files.items()))))
        target = snap(DST, {"b": (2, 2)})
        policy = ReconciliationPolicy()
        assert reconcile(forward, target, policy) == reconcile(backward, target, policy)
