"""Classify every relative path of two snapshots into copy / delete / unchanged."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import UpdateNotAllowedError
from ..models import FileEntry, ReconciliationPolicy, TreeSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Paths to copy and to delete.

    The sets overlap on ``updated``: a changed file is deleted from the
    target and copied again to the same path.
    """
    to_copy: frozenset[str]
    to_delete: frozenset[str]
    updated: frozenset[str] = frozenset()


def same_file(source: FileEntry, target: FileEntry) -> bool:
    """Size match and a target at least as new as the source.

    A newer target is trusted even if its content differs.
    """
    return target.size == source.size and source.mtime_ms <= target.mtime_ms


def reconcile(source: TreeSnapshot, target: TreeSnapshot, policy: ReconciliationPolicy) -> ReconcileResult:
    source_paths = source.paths()
    target_paths = target.paths()

    only_in_source = source_paths - target_paths
    only_in_target = target_paths - source_paths
    in_both = source_paths & target_paths

    updated = frozenset(p for p in in_both if not same_file(source[p], target[p]))
    if updated and not policy.allow_update:
        raise UpdateNotAllowedError(updated)

    to_copy = updated | only_in_source
    to_delete = (updated | only_in_target) if policy.allow_delete else updated

    logger.info(
        f"Reconciled {source.root} -> {target.root}: {len(only_in_source)} new, "
        f"{len(updated)} updated, {len(in_both) - len(updated)} unchanged, "
        f"{len(to_delete) - len(updated)} stale to delete"
        + ("" if policy.allow_delete else f", {len(only_in_target)} stale kept")
    )
    return ReconcileResult(to_copy=frozenset(to_copy), to_delete=frozenset(to_delete), updated=updated)
