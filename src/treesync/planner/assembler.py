from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from ..ancestors import AncestorResolver, no_ancestor_metadata
from ..errors import PlanFilterError
from ..filters import CopyableFileFilter
from ..fs import FileSystem
from ..models import (
    CopyIntent,
    DeleteIntent,
    DeleteStep,
    FileEntry,
    ReconciliationPlan,
    ReconciliationPolicy,
    TreeSnapshot,
)
from ..paths import relativize

logger = logging.getLogger(__name__)


def build_copy_intents(
    source_fs: FileSystem,
    source: TreeSnapshot,
    to_copy: Iterable[str],
    search_root: Path,
    publish_dir: Path,
    file_set: str,
    ancestor_resolver: AncestorResolver = no_ancestor_metadata,
) -> list[CopyIntent]:
    """One CopyIntent per path, in sorted path order.

    The destination is the file's path relative to the search root, re-rooted
    under ``publish_dir``.
    """
    intents: list[CopyIntent] = []
    for rel in sorted(to_copy):
        entry = source[rel]
        destination = Path(publish_dir) / relativize(entry.abs_path, search_root)
        intents.append(CopyIntent(
            source=entry,
            destination=destination,
            ancestor_metadata=ancestor_resolver(source_fs, entry.abs_path.parent, search_root),
            file_set=file_set,
        ))
    return intents


def apply_copy_filter(
    copy_filter: CopyableFileFilter,
    source_fs: FileSystem,
    target_fs: FileSystem,
    candidates: Sequence[CopyIntent],
) -> list[CopyIntent]:
    """Run ``copy_filter`` and check it only removed candidates."""
    filtered = list(copy_filter.filter(source_fs, target_fs, candidates))

    it = iter(candidates)
    for kept in filtered:
        if not any(kept == c for c in it):
            raise PlanFilterError(
                f"Copy filter {type(copy_filter).__name__} added or reordered intents "
                f"(offending destination: {kept.destination})"
            )

    if len(filtered) != len(candidates):
        logger.info(f"Copy filter kept {len(filtered)}/{len(candidates)} files")
    return filtered


def assemble(
    copy_intents: Sequence[CopyIntent],
    delete_entries: Iterable[FileEntry],
    policy: ReconciliationPolicy,
    target_root: Path,
    file_set: str,
) -> ReconciliationPlan:
    """Order copies first and wrap every delete in one trailing DeleteStep."""
    deletes = tuple(DeleteIntent(target=e) for e in sorted(delete_entries, key=lambda e: e.rel_path))
    copies = tuple(copy_intents)

    step = None
    if deletes:
        step = DeleteStep(
            file_set=file_set,
            deletes=deletes,
            prune_empty_directories=policy.prune_empty_directories,
            target_root=Path(target_root),
            depends_on=tuple(c.destination for c in copies),
        )

    plan = ReconciliationPlan(file_set=file_set, copy_intents=copies, delete_step=step)
    logger.info(f"Plan for {file_set}: {len(copies)} copies ({plan.copy_bytes} bytes), {len(deletes)} deletes")
    return plan
